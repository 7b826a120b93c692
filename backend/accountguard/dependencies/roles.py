"""
Role-based access control dependencies.

Roles are opaque strings carried on the user; this module only compares them.
"""
from typing import Callable

from fastapi import Depends

from accountguard.core.errors import ForbiddenError
from accountguard.dependencies.auth import get_current_active_user
from accountguard.models.user import User, UserRole


def require_roles(*allowed_roles: str) -> Callable:
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin-only")
        async def admin_route(user: User = Depends(require_roles("admin"))):
            ...

    Args:
        *allowed_roles: Roles that are allowed to access the route

    Returns:
        Dependency function that validates the user role
    """
    allowed = {str(role.value if isinstance(role, UserRole) else role) for role in allowed_roles}

    async def role_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return role_checker


def require_admin() -> Callable:
    """
    Shortcut dependency for admin-only routes.

    Usage:
        @router.get("/admin-only")
        async def admin_route(user: User = Depends(require_admin())):
            ...
    """
    return require_roles(UserRole.ADMIN)
