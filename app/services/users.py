from app.db.mongo import get_database, USERS
from app.schemas.user import SubscriptionStatus, UserInDB
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def _to_user(doc) -> Optional[UserInDB]:
    if not doc:
        return None
    doc["_id"] = str(doc["_id"])
    return UserInDB(**doc)


class UserService:
    def __init__(self):
        self.collection_name = USERS

    async def get_collection(self):
        db = await get_database()
        return db[self.collection_name]

    async def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> UserInDB:
        """Insert a new free-plan user. Raises DuplicateKeyError on a taken email."""
        collection = await self.get_collection()
        now = datetime.utcnow()
        doc = {
            "email": email,
            "password_hash": password_hash,
            "name": name,
            "plan": "free",
            "stripe_customer_id": None,
            "stripe_subscription_id": None,
            "subscription_status": SubscriptionStatus.NONE.value,
            "subscription_current_period_end": None,
            "created_at": now,
            "updated_at": now,
        }
        result = await collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Created user {result.inserted_id}")
        return _to_user(doc)

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        collection = await self.get_collection()
        return _to_user(await collection.find_one({"email": email}))

    async def get_by_id(self, user_id: str) -> Optional[UserInDB]:
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None
        collection = await self.get_collection()
        return _to_user(await collection.find_one({"_id": oid}))

    async def get_by_customer_ref(self, customer_id: str) -> Optional[UserInDB]:
        if not customer_id:
            return None
        collection = await self.get_collection()
        return _to_user(await collection.find_one({"stripe_customer_id": customer_id}))

    async def set_customer_ref(self, user_id: str, customer_id: str):
        collection = await self.get_collection()
        await collection.update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {"stripe_customer_id": customer_id, "updated_at": datetime.utcnow()}}
        )

    async def update_subscription(
        self,
        customer_id: str,
        plan: str,
        subscription_id: Optional[str],
        status: SubscriptionStatus,
        period_end: Optional[datetime]
    ) -> bool:
        """
        Overwrite the subscription fields of the user owning ``customer_id``.

        All four fields are written in one statement so a replayed event lands
        on the same state. Returns False when no user has that customer id.
        """
        collection = await self.get_collection()
        result = await collection.update_one(
            {"stripe_customer_id": customer_id},
            {"$set": {
                "plan": plan,
                "stripe_subscription_id": subscription_id,
                "subscription_status": status.value,
                "subscription_current_period_end": period_end,
                "updated_at": datetime.utcnow()
            }}
        )
        return result.matched_count > 0


user_service = UserService()
