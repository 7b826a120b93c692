"""
API Routers module.
"""
from accountguard.routers import admin_security, auth, health

__all__ = ["admin_security", "auth", "health"]
