"""
Security utilities for password hashing and JWT token management.
"""
import hashlib
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from accountguard.config import get_settings
from accountguard.schemas.protection import PasswordStrength

# Password hashing context using bcrypt (cost 2^bcrypt_rounds)
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)

SPECIAL_CHARACTERS = "@$!%*?&"
MIN_PASSWORD_LENGTH = 8

_PASSWORD_ALPHABET = (
    string.ascii_uppercase + string.ascii_lowercase + string.digits + SPECIAL_CHARACTERS
)


def hash_password(plain_password: str) -> str:
    """
    Hash a plain password using bcrypt.

    Every call draws a fresh salt, so two hashes of the same password differ.
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def dummy_verify() -> None:
    """Spend one verification's worth of time without a real hash."""
    pwd_context.dummy_verify()


def validate_password_strength(password: str) -> PasswordStrength:
    """
    Check a password against the strength rules.

    Rules are checked in a fixed order (length, uppercase, lowercase, digit,
    special) and the first one violated is reported.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return PasswordStrength(
            valid=False,
            reason=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if not any(c.isascii() and c.isupper() for c in password):
        return PasswordStrength(
            valid=False, reason="Password must contain at least one uppercase letter"
        )
    if not any(c.isascii() and c.islower() for c in password):
        return PasswordStrength(
            valid=False, reason="Password must contain at least one lowercase letter"
        )
    if not any(c in string.digits for c in password):
        return PasswordStrength(
            valid=False, reason="Password must contain at least one number"
        )
    if not any(c in SPECIAL_CHARACTERS for c in password):
        return PasswordStrength(
            valid=False,
            reason=f"Password must contain at least one special character ({SPECIAL_CHARACTERS})",
        )
    return PasswordStrength(valid=True)


def generate_password(length: int = 12) -> str:
    """
    Generate a human-facing temporary password.

    Contains at least one character of each required class. Not meant to be
    used as a bearer token.
    """
    if length < 4:
        raise ValueError("Generated passwords need at least 4 characters")

    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(SPECIAL_CHARACTERS),
    ]
    chars.extend(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length - 4))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def hash_token(token: str) -> str:
    """SHA-256 hex digest for high-entropy tokens (reset tokens) before storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """
    Canonical form of an email identifier, as EmailStr produces it (domain
    lower-cased). Values that are not valid addresses are returned unchanged.
    """
    try:
        return _email_adapter.validate_python(email)
    except PydanticValidationError:
        return email


def create_token(
    claims: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta,
    now: Optional[datetime] = None,
) -> str:
    """
    Sign a JWT carrying *claims* plus issuer, audience, iat and exp.

    Args:
        claims: Token-specific claims (sub, type, ...)
        secret_key: Signing key
        expires_delta: Lifetime of the token
        now: Issue time (defaults to the current time)

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)

    payload = {
        **claims,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }

    return jwt.encode(payload, secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, secret_key: str, token_type: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If the signature, expiry, issuer, audience or type is invalid
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
    if payload.get("type") != token_type:
        raise JWTError(f"Expected a {token_type} token")
    return payload
