# backend/ems/api/endpoints/health.py

from fastapi import APIRouter
from pymongo.errors import PyMongoError

from ems.core.errors import StorageError
from ems.db.mongo import get_db
from ems.realtime.hub import hub

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """
    [운영] 헬스 체크
    - 서버 생존 여부 + Mongo 연결 여부 + 실시간 연결 수
    """
    mongo_ok = False
    try:
        await get_db().command("ping")
        mongo_ok = True
    except (PyMongoError, StorageError):
        mongo_ok = False

    return {
        "status": "ok" if mongo_ok else "degraded",
        "mongo": mongo_ok,
        "connections": len(hub.connections),
        "online_users": len(hub.user_connections),
    }
