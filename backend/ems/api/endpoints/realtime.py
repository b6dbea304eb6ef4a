# backend/ems/api/endpoints/realtime.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ems.core.errors import AppError
from ems.core.security import decode_access_token
from ems.crud import users as users_crud
from ems.realtime.hub import ERROR, hub

logger = logging.getLogger(__name__)

router = APIRouter()


async def _announce_token_user(connection_id: str, token: str) -> None:
    # role comes from the stored user, not from the token claims
    payload = decode_access_token(token)
    try:
        user = await users_crud.get_user_by_id(payload["sub"]) if payload else None
    except AppError as e:
        await hub.send(connection_id, ERROR, {"message": e.message})
        return
    if user is None:
        await hub.send(connection_id, ERROR, {"message": "Invalid token"})
        return
    await hub.announce(connection_id, user.id, role=user.role.value)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = None):
    await websocket.accept()
    connection_id = hub.register(websocket)

    try:
        if token:
            await _announce_token_user(connection_id, token)

        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await hub.send(connection_id, ERROR, {"message": "Malformed message"})
                continue
            await hub.handle(connection_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(connection_id)
