"""
Request and response schemas for API endpoints.
"""
from accountguard.schemas.auth import (
    LoginRequest,
    LoginResponse,
    TokenPair,
    RefreshRequest,
    LogoutRequest,
    ChangePasswordRequest,
    PasswordResetRequest,
    PasswordResetResponse,
    ResetPasswordRequest,
    MessageResponse,
    AccessTokenPayload,
    RefreshTokenPayload,
)
from accountguard.schemas.user import PublicUser
from accountguard.schemas.protection import (
    PasswordStrength,
    LockoutDecision,
    RiskAction,
    RiskAssessment,
    FailingSource,
    LoginStats,
    CleanupResponse,
    RevokeSessionsResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "TokenPair",
    "RefreshRequest",
    "LogoutRequest",
    "ChangePasswordRequest",
    "PasswordResetRequest",
    "PasswordResetResponse",
    "ResetPasswordRequest",
    "MessageResponse",
    "AccessTokenPayload",
    "RefreshTokenPayload",
    # User
    "PublicUser",
    # Account protection
    "PasswordStrength",
    "LockoutDecision",
    "RiskAction",
    "RiskAssessment",
    "FailingSource",
    "LoginStats",
    "CleanupResponse",
    "RevokeSessionsResponse",
]
