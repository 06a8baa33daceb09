from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

USERS = "users"
DAILY_USAGE = "daily_usage"
REQUEST_LOGS = "request_logs"


class MongoDB:
    client: AsyncIOMotorClient = None
    db = None

    async def connect_to_database(self):
        logger.info("Connecting to MongoDB...")
        try:
            self.client = AsyncIOMotorClient(settings.MONGO_URI)
            self.db = self.client[settings.MONGO_DB_NAME]
            logger.info("Connected to MongoDB.")
        except Exception as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise e
        await self.ensure_indexes()

    async def ensure_indexes(self):
        """Create the unique keys the services rely on."""
        await self.db[USERS].create_index([("email", ASCENDING)], unique=True)
        await self.db[USERS].create_index([("stripe_customer_id", ASCENDING)])
        # One usage record per user per day; the ledger upsert depends on it
        await self.db[DAILY_USAGE].create_index(
            [("user_id", ASCENDING), ("date", ASCENDING)],
            unique=True
        )
        await self.db[REQUEST_LOGS].create_index([("user_id", ASCENDING)])
        logger.info("MongoDB indexes ensured.")

    async def close_database_connection(self):
        logger.info("Closing MongoDB connection...")
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed.")

mongodb = MongoDB()

async def get_database():
    return mongodb.db
