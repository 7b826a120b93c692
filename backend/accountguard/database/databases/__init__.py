"""
Database definitions and collection constants.
"""
from accountguard.database.databases import auth_db

__all__ = ["auth_db"]
