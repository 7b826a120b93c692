"""
Audit trail sink (auth_db.audit_logs).
"""
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from accountguard.core.timeutils import to_storage, utcnow
from accountguard.database.databases import auth_db
from accountguard.models.audit import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    """Fire-and-forget writer for security events."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.audit_logs = db[auth_db.Collections.AUDIT_LOGS]

    async def write(self, event: AuditEvent) -> None:
        """
        Persist *event*. A failing store is logged, never raised, so an
        authentication flow cannot fail because of its audit trail.
        """
        doc = event.model_dump()
        doc["created_at"] = to_storage(event.created_at or utcnow())
        try:
            await self.audit_logs.insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Failed to write audit event {doc['action']}: {e}")
