# backend/ems/client/listener.py
import json
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import websockets

from ems.client.sync import TaskSyncClient

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]


class SyncListener:
    """
    Realtime subscription for one user.

    Announces the user, folds pushed task events into the sync client's cache
    and forwards every event to registered handlers. Handlers must be removed
    with `off()` (or all at once by `close()`) when their owner goes away.
    """

    def __init__(self, url: str, user_id: str, sync_client: Optional[TaskSyncClient] = None):
        self.url = url
        self.user_id = user_id
        self.sync_client = sync_client
        if sync_client is not None and sync_client.user_id is None:
            sync_client.user_id = user_id
        self.online_users: List[str] = []
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._ws = None

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event]

    async def send(self, event: str, data: Any = None) -> None:
        if self._ws is None:
            raise RuntimeError("listener is not connected")
        await self._ws.send(json.dumps({"event": event, "data": data}))

    async def run(self) -> None:
        """Connect, announce, and dispatch until the server or close() ends it."""
        async with websockets.connect(self.url) as ws:
            self._ws = ws
            try:
                await self.send("user-connected", self.user_id)
                async for raw in ws:
                    await self.dispatch(raw)
            except websockets.exceptions.ConnectionClosed as e:
                logger.info("Realtime connection closed: %s", e)
            finally:
                self._ws = None

    async def dispatch(self, raw: Union[str, bytes]) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping malformed realtime message")
            return
        if not isinstance(message, dict):
            return

        event = message.get("event")
        data = message.get("data")

        if event == "active-users-list" and isinstance(data, list):
            self.online_users = list(data)
        elif event == "users-updated" and isinstance(data, dict):
            user_id = data.get("user_id")
            if data.get("status") == "online" and user_id not in self.online_users:
                self.online_users.append(user_id)
            elif data.get("status") == "offline" and user_id in self.online_users:
                self.online_users.remove(user_id)
        elif self.sync_client is not None:
            self.sync_client.apply_event(event, data)

        for handler in list(self._handlers.get(event, ())):
            result = handler(data)
            if result is not None:
                await result

    async def close(self) -> None:
        self._handlers.clear()
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
