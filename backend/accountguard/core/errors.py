"""
Error taxonomy for the authentication core and its FastAPI handlers.

Services raise these instead of HTTPException; the handlers render them
with a ``{"detail": ..., "code": ...}`` body, keeping the ``detail`` key
FastAPI uses for its own errors.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class AuthError(Exception):
    """Base class for all errors raised by the authentication core."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "auth_error"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return None


class UnauthorizedError(AuthError):
    """Bad, missing or expired credentials or tokens."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"


class ValidationError(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"


class NotFoundError(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class RateLimitError(AuthError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "rate_limited"


def register_error_handlers(app: FastAPI) -> None:
    """Register the AuthError handler on the FastAPI app."""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.error_code},
            headers=exc.headers,
        )
