# app/db/mongo.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def is_connected() -> bool:
    return _db is not None


async def connect():
    """
    Create the Motor client for the profile store.
    A failed startup ping is not fatal: the client stays lazy and the first
    profile lookup retries the connection.
    """
    global _client, _db
    settings = get_settings()

    def _new_client() -> AsyncIOMotorClient:
        options = {
            "uuidRepresentation": "standard",
            "serverSelectionTimeoutMS": 6000,
            "connectTimeoutMS": 6000,
        }
        if settings.MONGO_URI.startswith("mongodb+srv"):
            # SRV implies TLS; containers often lack a system CA bundle
            options["tlsCAFile"] = certifi.where()
        return AsyncIOMotorClient(settings.MONGO_URI, **options)

    _client = _new_client()
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok)")
    except Exception as e:
        logger.warning(f"Mongo ping at startup failed, will connect lazily on first query: {e}")


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
