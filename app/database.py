import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from app import config
from app.models.attendance_session import AttendanceSession
from app.models.user import User

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [AttendanceSession, User]


async def init_db(client=None):
    """Connect to MongoDB and register the document models.

    A client can be passed in (tests hand over a mock client); otherwise one is
    created from MONGO_URI and pinged so a bad connection string fails fast.
    """
    if client is None:
        client = AsyncIOMotorClient(config.MONGO_URI, serverSelectionTimeoutMS=5000)
        await client.admin.command("ping")
    await init_beanie(database=client[config.DATABASE_NAME], document_models=DOCUMENT_MODELS)
    logger.info(f"✅ Connected to MongoDB database '{config.DATABASE_NAME}'")
    return client
