"""
User model for authentication database.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """Role identifiers known to the admin surface. Other roles pass through opaquely."""
    USER = "user"
    ADMIN = "admin"


class PasswordResetToken(BaseModel):
    """
    The single reset token slot embedded in a user document.

    Only the SHA-256 hash of the bearer token is stored.
    """
    token_hash: str = Field(..., description="SHA-256 hex digest of the reset token")
    expires_at: datetime = Field(..., description="Token expiry (UTC)")
    used: bool = Field(default=False, description="Set once the token is redeemed")
    created_at: Optional[datetime] = Field(None, description="When the token was issued")


class User(BaseModel):
    """
    User document model for MongoDB auth_db.users collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    email: EmailStr = Field(..., description="Unique email address")
    hashed_password: str = Field(..., description="Bcrypt hashed password")
    role: str = Field(default=UserRole.USER.value, description="Opaque role identifier")
    is_active: bool = Field(default=True, description="Disabled accounts cannot log in")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")

    # Legacy counters from the per-user lockout scheme, reset on login
    failed_attempts: int = Field(
        default=0,
        description="Number of consecutive failed login attempts (legacy)"
    )
    locked_until: Optional[datetime] = Field(
        None,
        description="Account locked until this timestamp (legacy)"
    )
    last_failed_login: Optional[datetime] = Field(None, description="Legacy failure timestamp")

    last_login: Optional[datetime] = Field(None, description="Last successful login")
    token_generation: int = Field(
        default=0,
        description="Refresh tokens minted under an older generation are revoked"
    )
    password_reset: Optional[PasswordResetToken] = Field(
        None,
        description="Active or last-issued password reset token"
    )
    created_at: Optional[datetime] = Field(None, description="Account creation timestamp")

    class Config:
        populate_by_name = True
        use_enum_values = True
