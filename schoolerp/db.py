"""MongoDB connection and Beanie document registration."""
import logging

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from schoolerp.config import settings
from schoolerp.models import DOCUMENT_MODELS

logger = logging.getLogger(__name__)

_client = None


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=DOCUMENT_MODELS,
    )
    logger.info("Connected to MongoDB database %s", settings.mongodb_db_name)


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None
