# backend/ems/db/mongo.py
import logging
from contextlib import contextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from ems.core.config import settings
from ems.core.errors import StorageError

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient | None = None
db = None


async def connect_to_mongo():
    global client, db
    client = AsyncIOMotorClient(settings.MONGO_URI)
    db = client[settings.MONGO_DB_NAME]
    logger.info("MongoDB connected (db=%s)", settings.MONGO_DB_NAME)


async def close_mongo_connection():
    global client, db
    if client:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    db = None


def get_db():
    if db is None:
        raise StorageError("Database connection is not initialized")
    return db


@contextmanager
def storage_errors(action: str):
    """
    Turns driver failures into StorageError so callers only ever see a message.
    """
    try:
        yield
    except PyMongoError as e:
        logger.error("MongoDB error while trying to %s: %s", action, e)
        raise StorageError(f"Failed to {action}") from e
