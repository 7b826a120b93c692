"""
Dependencies for dependency injection in routes.
"""
from accountguard.dependencies.auth import (
    CurrentUser,
    get_auth_service,
    get_current_user,
    get_current_active_user,
)
from accountguard.dependencies.roles import require_roles, require_admin

__all__ = [
    "CurrentUser",
    "get_auth_service",
    "get_current_user",
    "get_current_active_user",
    "require_roles",
    "require_admin",
]
