from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from beanie import init_beanie
from pymongo.errors import ConfigurationError
from app.core.config import settings
from app.models.user import User
from app.models.social_account import SocialAccount
from app.models.analytics import AnalyticsTimeSeries
from app.models.post import Post
from app.models.oauth_state import OAuthState
from app.utils.logger import logger

DOCUMENT_MODELS = [
    User,
    SocialAccount,
    AnalyticsTimeSeries,
    Post,
    OAuthState,
]

client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None
db_initialized = False

async def ensure_beanie_initialized():
    global client, db, db_initialized
    if db_initialized:
        return

    if not settings.MONGODB_URI:
        logger.critical("MONGODB_URI not found")
        return

    try:
        client = AsyncIOMotorClient(settings.MONGODB_URI)

        # Safely get database name
        try:
            db = client.get_default_database()
        except ConfigurationError:
            # No default db in URI
            db = client[settings.MONGODB_DB]

        await init_beanie(database=db, document_models=DOCUMENT_MODELS)
        db_initialized = True
        logger.info("Beanie initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize Beanie: {e}")

async def ensure_db():
    """Router dependency: lazily initialise the database on cold starts."""
    await ensure_beanie_initialized()

def get_collection(name: str):
    if db is None:
        raise RuntimeError("Database not initialized")
    return db[name]
