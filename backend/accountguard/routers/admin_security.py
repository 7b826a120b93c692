"""
Admin security router: login monitoring, ledger cleanup and session revocation.

Every route requires the admin role.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from accountguard.dependencies.auth import get_auth_service
from accountguard.dependencies.roles import require_admin
from accountguard.models.user import User
from accountguard.routers.auth import get_client_ip, get_user_agent
from accountguard.schemas.protection import (
    CleanupResponse,
    LockoutDecision,
    LoginStats,
    RevokeSessionsResponse,
)
from accountguard.services.auth_service import MAX_STATS_WINDOW_HOURS, AuthService

router = APIRouter(prefix="/admin/security", tags=["Admin Security"])


@router.get(
    "/login-stats",
    response_model=LoginStats,
    summary="Login attempt statistics",
)
async def get_login_stats(
    admin: Annotated[User, Depends(require_admin())],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    hours: int = Query(24, ge=1, le=MAX_STATS_WINDOW_HOURS, description="Window in hours"),
):
    """
    Attempt counts over the window and the top 10 failing source IPs.
    """
    return await auth_service.get_login_stats(hours)


@router.post(
    "/cleanup-attempts",
    response_model=CleanupResponse,
    summary="Purge old login attempts",
)
async def cleanup_attempts(
    admin: Annotated[User, Depends(require_admin())],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Delete login attempts past the retention period. Reports 0 on store failure."""
    deleted = await auth_service.cleanup_old_attempts()
    return CleanupResponse(
        message=f"Deleted {deleted} old login attempts",
        deleted_count=deleted,
    )


@router.get(
    "/check-lockout",
    response_model=LockoutDecision,
    summary="Check lockout status for an email",
)
async def check_lockout(
    admin: Annotated[User, Depends(require_admin())],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    email: str = Query(..., min_length=1, description="Email to check"),
):
    return await auth_service.check_lockout(email)


@router.post(
    "/users/{user_id}/revoke-sessions",
    response_model=RevokeSessionsResponse,
    summary="Revoke every session of a user",
)
async def revoke_sessions(
    user_id: str,
    request: Request,
    admin: Annotated[User, Depends(require_admin())],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Invalidate every outstanding refresh token of the user, tracked or not.

    Access tokens already issued stay valid until they expire.
    """
    revoked = await auth_service.revoke_user_sessions(
        user_id,
        actor_id=admin.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return RevokeSessionsResponse(user_id=user_id, revoked_tokens=revoked)
