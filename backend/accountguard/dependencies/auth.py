"""
Authentication dependencies for route protection.
"""
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from accountguard.core.errors import ForbiddenError, UnauthorizedError
from accountguard.database.connections import get_auth_database
from accountguard.models.user import User
from accountguard.services.auth_service import AuthService

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"

bearer_scheme = HTTPBearer(auto_error=False)


async def get_auth_service() -> AuthService:
    """Dependency to get AuthService instance."""
    db = await get_auth_database()
    return AuthService(db)


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Access token from the HTTP-only cookie, else from the Bearer header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """
    Dependency to get the current authenticated user from the access token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired,
            or if the user no longer exists
    """
    token = get_access_token(request, credentials)
    if not token:
        raise UnauthorizedError("Not authenticated")

    payload = auth_service.tokens.verify_access_token(token)

    user = await auth_service.get_user_by_id(payload.sub)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")

    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Dependency to ensure the current user is active (not disabled).

    Raises:
        ForbiddenError: If user account is disabled
    """
    if not current_user.is_active:
        raise ForbiddenError("Account is disabled")
    return current_user


# Type alias for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_active_user)]
