"""
Core module - Security, policies, errors and rate limiting.
"""
from accountguard.core.security import (
    hash_password,
    verify_password,
    validate_password_strength,
    generate_password,
    hash_token,
    normalize_email,
    create_token,
    decode_token,
)
from accountguard.core.rate_limit import check_rate_limit
from accountguard.core.errors import (
    AuthError,
    UnauthorizedError,
    ForbiddenError,
    ValidationError,
    NotFoundError,
    RateLimitError,
)
from accountguard.core.policy import (
    AuthPolicy,
    LockoutPolicy,
    LockoutTier,
    RiskPolicy,
    TokenPolicy,
)

__all__ = [
    "hash_password",
    "verify_password",
    "validate_password_strength",
    "generate_password",
    "hash_token",
    "normalize_email",
    "create_token",
    "decode_token",
    "check_rate_limit",
    "AuthError",
    "UnauthorizedError",
    "ForbiddenError",
    "ValidationError",
    "NotFoundError",
    "RateLimitError",
    "AuthPolicy",
    "LockoutPolicy",
    "LockoutTier",
    "RiskPolicy",
    "TokenPolicy",
]
