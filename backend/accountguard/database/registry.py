"""
Database registry management.
Ensures all databases and collections are registered on startup.
"""
import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from accountguard.database.databases import auth_db

logger = logging.getLogger(__name__)

REGISTRY_DB_NAME = "system_db"
REGISTRY_COLLECTION = "db_registry"

# All database manifests
ALL_DB_MANIFESTS = [
    auth_db.DB_MANIFEST,
]

SCHEMA_VERSION = "1.0"


async def sync_registry(client: AsyncIOMotorClient) -> None:
    """
    Synchronize the database registry on application startup.
    Ensures all databases are registered in system_db.db_registry.
    """
    sys_db = client[REGISTRY_DB_NAME]
    registry_collection = sys_db[REGISTRY_COLLECTION]
    now = datetime.now(timezone.utc)

    for manifest in ALL_DB_MANIFESTS:
        db_name = manifest["db_name"]

        await registry_collection.update_one(
            {"_id": db_name},
            {
                "$set": {
                    "purpose": manifest["purpose"],
                    "collections": manifest["collections"],
                    "access_level": manifest["access_level"],
                    "schema_version": SCHEMA_VERSION,
                    "updated_at": now,
                },
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

        # Every registered database carries a _metadata document
        await client[db_name]["_metadata"].update_one(
            {"_id": "db_metadata"},
            {
                "$set": {"db_name": db_name, "last_updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    logger.info(f"Registry synced for {len(ALL_DB_MANIFESTS)} databases")


async def create_indexes(client: AsyncIOMotorClient) -> None:
    """Create necessary indexes for all databases."""
    await auth_db.create_auth_indexes(client[auth_db.DB_NAME])
