# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ems.api.endpoints import employees, health, realtime, tasks, users
from ems.core.config import settings
from ems.core.errors import register_exception_handlers
from ems.core.logging import setup_logging
from ems.db.mongo import close_mongo_connection, connect_to_mongo
from ems.realtime.hub import hub

logger = logging.getLogger(__name__)


# [수명 주기 관리] DB 연결 및 해제
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting in %s mode", settings.ENVIRONMENT)
    await connect_to_mongo()
    yield
    hub.reset()
    await close_mongo_connection()


app = FastAPI(title="Employee Management Backend", lifespan=lifespan)

# --- 미들웨어 설정 ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def read_root():
    return {"message": "Backend is running!"}


app.include_router(health.router)
app.include_router(users.router, prefix=settings.API_PREFIX)
app.include_router(employees.router, prefix=settings.API_PREFIX)
app.include_router(tasks.router, prefix=settings.API_PREFIX)

# 실시간 이벤트 (WebSocket)
app.include_router(realtime.router)
