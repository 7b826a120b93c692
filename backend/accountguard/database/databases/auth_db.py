"""
Auth database configuration.
Stores user credentials, the login attempt ledger, refresh token
bookkeeping and the audit trail.
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

DB_NAME = "auth_db"


class Collections:
    """Collection names in auth_db."""
    USERS = "users"
    LOGIN_ATTEMPTS = "login_attempts"
    REFRESH_TOKENS = "refresh_tokens"
    AUDIT_LOGS = "audit_logs"
    METADATA = "_metadata"

    # Index definitions for each collection
    INDEXES = {
        "users": [
            {"keys": [("email", ASCENDING)], "unique": True},
            {"keys": [("password_reset.token_hash", ASCENDING)], "sparse": True},
        ],
        "login_attempts": [
            {"keys": [("email", ASCENDING), ("successful", ASCENDING), ("attempted_at", DESCENDING)]},
            {"keys": [("user_id", ASCENDING), ("successful", ASCENDING), ("attempted_at", DESCENDING)]},
            {"keys": [("attempted_at", ASCENDING)]},
            {"keys": [("ip_address", ASCENDING)]},
        ],
        "refresh_tokens": [
            {"keys": [("user_id", ASCENDING)]},
            {"keys": [("expires_at", ASCENDING)]},
        ],
        "audit_logs": [
            {"keys": [("user_id", ASCENDING), ("created_at", DESCENDING)]},
            {"keys": [("action", ASCENDING)]},
        ],
    }


async def create_auth_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for auth database collections."""
    for collection_name, indexes in Collections.INDEXES.items():
        collection = db[collection_name]
        for index_def in indexes:
            keys = index_def["keys"]
            kwargs = {k: v for k, v in index_def.items() if k != "keys"}
            await collection.create_index(keys, **kwargs)


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Credentials, login attempt ledger, refresh tokens and audit trail",
    "collections": [
        Collections.USERS,
        Collections.LOGIN_ATTEMPTS,
        Collections.REFRESH_TOKENS,
        Collections.AUDIT_LOGS,
        Collections.METADATA,
    ],
    "access_level": "restricted",
}
