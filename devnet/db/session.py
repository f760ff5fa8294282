# devnet/db/session.py
"""
Odmantic AIOEngine setup for the app.
Creates an AsyncIOMotorClient and uses it to construct an AIOEngine.
"""
import logging

from motor.motor_asyncio import AsyncIOMotorClient
from odmantic import AIOEngine
from pymongo import ASCENDING, DESCENDING

from devnet.core.config import settings

logger = logging.getLogger(__name__)

# Create Motor client and Odmantic engine.
# Use the DB name from settings (MONGO_DB).
_client = AsyncIOMotorClient(settings.MONGO_URI, serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS)
engine = AIOEngine(client=_client, database=settings.MONGO_DB)


def get_engine() -> AIOEngine:
    """
    FastAPI dependency that provides a reusable AIOEngine instance.
    """
    return engine


async def ensure_indexes(aio_engine: AIOEngine) -> None:
    """Creates the indexes the queries rely on. Safe to run on every startup."""
    db = aio_engine.client[settings.MONGO_DB]

    await db["users"].create_index("email", unique=True)
    await db["users"].create_index("username", unique=True)
    await db["users"].create_index("connections")

    contents = db["contents"]
    await contents.create_index("user_id")
    await contents.create_index("content_type")
    await contents.create_index([("created_at", DESCENDING)])
    await contents.create_index("reposts")
    await contents.create_index("saves")
    await contents.create_index("original_content_id")
    await contents.create_index("tags")
    await contents.create_index("solved")

    await db["cv_profiles"].create_index([("user_id", ASCENDING), ("is_default", DESCENDING)])
    logger.info("Database indexes ensured successfully.")


def close_client() -> None:
    _client.close()

# Usage NOTE:
# - await engine.save(model_instance)
# - await engine.find_one(Model, Model.field == value)
# - engine.get_collection(Model) returns the raw Motor collection for conditional writes
