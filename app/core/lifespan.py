# app/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db import mongo
from app.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Profile store is optional: /test-recommendations and related items work without it
    if settings.MONGO_URI:
        try:
            await mongo.connect()
        except Exception as e:
            logger.error(f"Mongo client init failed: {e}")
            raise
    else:
        logger.warning("No MONGO_URI provided, skipping Mongo connection")

    if not settings.OPENAI_API_KEY:
        logger.warning("No OPENAI_API_KEY provided, streaming recommendations will fail")

    # Application runs
    yield

    # --- Shutdown ---
    if settings.MONGO_URI:
        await mongo.disconnect()
        logger.info("Mongo disconnected")
