"""
Authentication router: login, token rotation, logout and password flows.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response
from redis.asyncio import Redis

from accountguard.config import get_settings
from accountguard.core.errors import RateLimitError
from accountguard.core.rate_limit import check_rate_limit
from accountguard.database.connections import get_redis_client
from accountguard.dependencies.auth import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    CurrentUser,
    get_auth_service,
)
from accountguard.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetRequest,
    PasswordResetResponse,
    RefreshRequest,
    ResetPasswordRequest,
    TokenPair,
)
from accountguard.schemas.user import PublicUser
from accountguard.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE_PATH = "/auth"


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("User-Agent")


def is_browser_client(request: Request) -> bool:
    """Browsers get their tokens as HTTP-only cookies as well as in the body."""
    user_agent = request.headers.get("User-Agent", "")
    return "Mozilla" in user_agent or "Sec-Fetch-Site" in request.headers


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    settings = get_settings()
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=tokens.expires_in,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 24 * 3600,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path=REFRESH_COOKIE_PATH)


def get_refresh_token_from_request(
    request: Request,
    body: Optional[RefreshRequest | LogoutRequest],
) -> Optional[str]:
    """Refresh token from the cookie when present, else from the body."""
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if token:
        return token
    if body is not None:
        return body.refresh_token
    return None


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login and get a token pair",
)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    redis: Annotated[Redis, Depends(get_redis_client)],
):
    """
    Authenticate with email and password.

    Returns an access token, a refresh token and the public user. Browser
    clients also receive both tokens as HTTP-only cookies.

    **Rate limited** per IP; repeated failures also trigger a progressive
    account lockout.
    """
    client_ip = get_client_ip(request)
    if not await check_rate_limit(redis, client_ip, "/auth/login"):
        raise RateLimitError("Too many login attempts. Please try again later.")

    result = await auth_service.login(
        body.email,
        body.password,
        client_ip,
        get_user_agent(request),
    )

    if is_browser_client(request):
        set_auth_cookies(response, result)

    return result


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Rotate the refresh token",
)
async def refresh(
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    body: Optional[RefreshRequest] = None,
):
    """
    Exchange a refresh token for a new token pair.

    The token is read from the `refresh_token` cookie, or from the body.
    """
    tokens = await auth_service.refresh(
        get_refresh_token_from_request(request, body),
        get_client_ip(request),
        get_user_agent(request),
    )

    if is_browser_client(request):
        set_auth_cookies(response, tokens)

    return tokens


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
)
async def logout(
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    body: Optional[LogoutRequest] = None,
):
    """Revoke the refresh token if valid and clear the auth cookies. Always succeeds."""
    await auth_service.logout(
        get_refresh_token_from_request(request, body),
        get_client_ip(request),
        get_user_agent(request),
    )
    clear_auth_cookies(response)
    return MessageResponse(message="Logged out")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: CurrentUser,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Change the password of the authenticated user.

    All refresh tokens of the user are revoked; every session must log in again.
    """
    await auth_service.change_password(
        current_user.id,
        body.current_password,
        body.new_password,
        get_client_ip(request),
        get_user_agent(request),
    )
    return MessageResponse(message="Password changed successfully")


@router.post(
    "/password-reset/request",
    response_model=PasswordResetResponse,
    summary="Request a password reset token",
)
async def request_password_reset(
    body: PasswordResetRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Issue a single-use reset token valid for one hour.

    The response has the same shape whether or not the account exists; the
    token is empty for unknown identifiers.
    """
    token = await auth_service.request_password_reset(body.email)
    return PasswordResetResponse(reset_token=token)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Reset password with a reset token",
)
async def confirm_password_reset(
    request: Request,
    body: ResetPasswordRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    await auth_service.reset_password(
        body.token,
        body.new_password,
        get_client_ip(request),
        get_user_agent(request),
    )
    return MessageResponse(message="Password reset successfully")


@router.get(
    "/me",
    response_model=PublicUser,
    summary="Get current user info",
)
async def get_current_user_info(current_user: CurrentUser):
    """Get information about the currently authenticated user."""
    return AuthService.to_public_user(current_user)
