"""
Pydantic models for database documents.
"""
from accountguard.models.user import User, UserRole, PasswordResetToken
from accountguard.models.login_attempt import LoginAttempt
from accountguard.models.refresh_token import RefreshTokenRecord
from accountguard.models.audit import AuditAction, AuditEvent

__all__ = [
    "User",
    "UserRole",
    "PasswordResetToken",
    "LoginAttempt",
    "RefreshTokenRecord",
    "AuditAction",
    "AuditEvent",
]
