from app.db.mongo import get_database, DAILY_USAGE, REQUEST_LOGS
from app.core.config import settings
from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from pydantic import BaseModel
from typing import Optional
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)


class UsageCounts(BaseModel):
    """A user's counters for one day."""
    requests_count: int = 0
    tokens_used: int = 0


def usage_day(now: Optional[datetime] = None) -> str:
    """Calendar date, in USAGE_TIMEZONE, that a request made at ``now`` counts against."""
    tz = ZoneInfo(settings.USAGE_TIMEZONE)
    current = now.astimezone(tz) if now else datetime.now(tz)
    return current.date().isoformat()


class UsageLedger:
    """
    Per-user daily counters.

    Increments go through a single upsert on the unique (user_id, date) key so
    concurrent requests from the same user, even across server processes,
    never lose an update.
    """

    def __init__(self):
        self.collection_name = DAILY_USAGE
        self.log_collection_name = REQUEST_LOGS

    async def get_collection(self):
        db = await get_database()
        return db[self.collection_name]

    async def get_today(self, user_id: str, day: Optional[str] = None) -> UsageCounts:
        """Read today's counters. A missing record reads as zero and is not created."""
        collection = await self.get_collection()
        doc = await collection.find_one({"user_id": user_id, "date": day or usage_day()})
        if not doc:
            return UsageCounts()
        return UsageCounts(
            requests_count=doc.get("requests_count", 0),
            tokens_used=doc.get("tokens_used", 0)
        )

    async def record_usage(self, user_id: str, tokens_used: int, day: Optional[str] = None) -> UsageCounts:
        """Count one request and ``tokens_used`` tokens against today's record."""
        collection = await self.get_collection()
        key = {"user_id": user_id, "date": day or usage_day()}
        update = {
            "$inc": {"requests_count": 1, "tokens_used": max(0, int(tokens_used))},
            "$setOnInsert": {"created_at": datetime.utcnow()}
        }

        try:
            doc = await collection.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            # Two first-of-day upserts raced; the record exists now, so this is a plain increment
            logger.info(f"Retrying usage upsert for user {user_id} on {key['date']}")
            doc = await collection.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )

        return UsageCounts(
            requests_count=doc["requests_count"],
            tokens_used=doc["tokens_used"]
        )

    async def log_request(
        self,
        user_id: str,
        endpoint: str,
        tokens_input: int,
        tokens_output: int,
        model: str
    ):
        """Append an analytics entry. Entries are never updated or read back here."""
        db = await get_database()
        await db[self.log_collection_name].insert_one({
            "user_id": user_id,
            "endpoint": endpoint,
            "tokens_input": tokens_input,
            "tokens_output": tokens_output,
            "model": model,
            "created_at": datetime.utcnow()
        })


usage_ledger = UsageLedger()
