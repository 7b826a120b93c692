"""
Login attempt ledger: append-only record of every login attempt.

Source of truth for lockout and risk decisions. Entries are written with a
single insert and never updated; the retention sweep is the only delete.
"""
from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from accountguard.core.timeutils import as_utc, to_storage, utcnow
from accountguard.database.databases import auth_db
from accountguard.models.login_attempt import LoginAttempt
from accountguard.schemas.protection import FailingSource, LoginStats

TOP_FAILING_SOURCES_LIMIT = 10


class LoginAttemptLedger:
    """Service over the auth_db.login_attempts collection."""

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialize with auth database."""
        self.db = db
        self.attempts = db[auth_db.Collections.LOGIN_ATTEMPTS]

    async def record(self, attempt: LoginAttempt) -> None:
        """Append one attempt. Insert-only, so concurrent writers never conflict."""
        doc = attempt.model_dump(exclude={"id"})
        doc["attempted_at"] = to_storage(attempt.attempted_at)
        await self.attempts.insert_one(doc)

    async def recent_failures(
        self,
        email: str,
        window: timedelta,
        now: Optional[datetime] = None,
    ) -> list[LoginAttempt]:
        """
        Failed attempts for *email* inside *window*, newest first.

        Args:
            email: Email the attempts were made against
            window: How far back to look
            now: End of the window (defaults to the current time)
        """
        since = (now or utcnow()) - window
        cursor = self.attempts.find(
            {
                "email": email,
                "successful": False,
                "attempted_at": {"$gte": to_storage(since)},
            }
        ).sort("attempted_at", DESCENDING)
        docs = await cursor.to_list(length=None)
        return [self._doc_to_attempt(doc) for doc in docs]

    async def known_ip_addresses(self, user_id: str, since: datetime) -> list[str]:
        """Distinct source IPs of the subject's successful logins since *since*."""
        cursor = self.attempts.find(
            {
                "user_id": user_id,
                "successful": True,
                "attempted_at": {"$gte": to_storage(since)},
            },
            {"ip_address": 1},
        )
        docs = await cursor.to_list(length=None)
        seen: dict[str, None] = {}
        for doc in docs:
            seen.setdefault(doc["ip_address"], None)
        return list(seen)

    async def recent_user_agents(
        self,
        user_id: str,
        since: datetime,
        limit: int = 10,
    ) -> list[str]:
        """User agents of the subject's most recent successful logins, newest first."""
        cursor = (
            self.attempts.find(
                {
                    "user_id": user_id,
                    "successful": True,
                    "attempted_at": {"$gte": to_storage(since)},
                },
                {"user_agent": 1},
            )
            .sort("attempted_at", DESCENDING)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [doc["user_agent"] for doc in docs if doc.get("user_agent")]

    async def purge_older_than(self, cutoff: datetime) -> int:
        """
        Delete attempts strictly older than *cutoff*.

        The cutoff is fixed by the caller, so entries written during the sweep
        are never touched and repeated runs are no-ops.
        """
        result = await self.attempts.delete_many(
            {"attempted_at": {"$lt": to_storage(cutoff)}}
        )
        return result.deleted_count

    async def stats_since(self, since: datetime) -> LoginStats:
        """Aggregate attempt counts and the top failing sources since *since*."""
        window = {"attempted_at": {"$gte": to_storage(since)}}

        total = await self.attempts.count_documents(window)
        successful = await self.attempts.count_documents({**window, "successful": True})
        failed = await self.attempts.count_documents({**window, "successful": False})

        pipeline = [
            {"$match": {**window, "successful": False}},
            {"$group": {"_id": "$ip_address", "count": {"$sum": 1}}},
            {"$sort": {"count": DESCENDING, "_id": 1}},
            {"$limit": TOP_FAILING_SOURCES_LIMIT},
        ]
        groups = await self.attempts.aggregate(pipeline).to_list(length=None)

        return LoginStats(
            total_attempts=total,
            successful_attempts=successful,
            failed_attempts=failed,
            top_failing_ips=[
                FailingSource(ip=group["_id"], count=group["count"]) for group in groups
            ],
        )

    @staticmethod
    def _doc_to_attempt(doc: dict) -> LoginAttempt:
        doc = dict(doc)
        doc["_id"] = str(doc["_id"])
        doc["attempted_at"] = as_utc(doc["attempted_at"])
        return LoginAttempt(**doc)
