"""
Database module - MongoDB and Redis connections and database definitions.
"""
from accountguard.database.connections import (
    get_mongo_client,
    get_redis_client,
    close_connections,
    get_database,
)
from accountguard.database.databases import auth_db

__all__ = [
    "get_mongo_client",
    "get_redis_client",
    "close_connections",
    "get_database",
    "auth_db",
]
