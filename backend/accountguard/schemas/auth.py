"""
Authentication request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from accountguard.schemas.user import PublicUser


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class TokenPair(BaseModel):
    """Access + refresh token pair."""
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class LoginResponse(TokenPair):
    """Login response with tokens and the public user projection."""
    user: PublicUser = Field(..., description="Authenticated user")


class RefreshRequest(BaseModel):
    """Refresh body; web clients send the token as a cookie instead."""
    refresh_token: Optional[str] = Field(None, description="Refresh token")


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, description="Refresh token to revoke")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")


class PasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="Account identifier (email)")


class PasswordResetResponse(BaseModel):
    """Empty token when the identifier is unknown."""
    reset_token: str = Field(..., description="Raw reset token, to be delivered out of band")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., description="Reset token")
    new_password: str = Field(..., description="New password")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Result message")


class AccessTokenPayload(BaseModel):
    """Decoded access token payload."""
    sub: str = Field(..., description="Subject (user ID)")
    email: str = Field(..., description="User email")
    role: str = Field(..., description="Opaque role identifier")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(..., description="Issued at time")


class RefreshTokenPayload(BaseModel):
    """Decoded refresh token payload."""
    sub: str = Field(..., description="Subject (user ID)")
    tid: str = Field(..., description="Token ID tracked in the revocation index")
    gen: int = Field(default=0, description="Subject token generation at issuance")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(..., description="Issued at time")
