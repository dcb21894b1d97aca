"""
MongoDB connection management.
"""
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    """
    MongoDB connection manager.
    Provides access to database and collections with connection management.
    """

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    @classmethod
    def connect_to_mongodb(cls):
        """
        Connect to MongoDB if not already connected.
        Motor connects lazily, so this only builds the client.
        """
        if cls.client is None:
            logger.info(f"Connecting to MongoDB at {settings.MONGODB_URL} (database: {settings.MONGODB_DB})")

            cls.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
            cls.db = cls.client[settings.MONGODB_DB]

    @classmethod
    async def close_mongodb_connection(cls):
        """
        Close MongoDB connection if open.
        """
        if cls.client is not None:
            cls.client.close()
            cls.client = None
            cls.db = None
            logger.info("Closed MongoDB connection")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """
        Get database instance.

        Returns:
            AsyncIOMotorDatabase instance
        """
        if cls.db is None:
            cls.connect_to_mongodb()
        return cls.db

    @classmethod
    def get_collection(cls, collection_name: str):
        """
        Get collection by name.

        Args:
            collection_name: Name of collection

        Returns:
            AsyncIOMotorCollection instance
        """
        return cls.get_database()[collection_name]

    @classmethod
    async def ensure_indexes(cls):
        """Create the unique and lookup indexes the dispatch core relies on."""
        db = cls.get_database()
        await db[REQUESTS].create_index("requestId", unique=True)
        await db[REQUESTS].create_index("machineId")
        await db[REQUEST_STATUS_UPDATES].create_index([("requestId", 1), ("userId", 1)])
        await db[KITCHENS].create_index("userId", unique=True)
        await db[DELIVERY_AGENTS].create_index("userId", unique=True)
        await db[APP_USERS].create_index("userId", unique=True)
        await db[CANISTERS].create_index("scanId", unique=True)


mongodb = MongoDB()

# Collection names
MACHINES = "machines"
KITCHENS = "kitchens"
DELIVERY_AGENTS = "delivery_agents"
APP_USERS = "app_users"
REQUESTS = "requests"
REQUEST_STATUS_UPDATES = "request_status_updates"
COUNTERS = "counters"
CANISTERS = "canisters"


# Helper functions to get collections
def get_collection(name: str):
    return mongodb.get_collection(name)


def get_counters_collection():
    return get_collection(COUNTERS)
