"""
Token service: access token issuance and rotating, revocable refresh tokens.

Access tokens are stateless. Refresh tokens carry a token ID (``tid``) that
is tracked in auth_db.refresh_tokens, plus the subject's token generation
(``gen``); bumping the generation invalidates every outstanding refresh
token of the subject, tracked or not.
"""
import logging
import secrets
from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError

from accountguard.config import Settings, get_settings
from accountguard.core.errors import UnauthorizedError
from accountguard.core.policy import TokenPolicy
from accountguard.core.security import create_token, decode_token
from accountguard.core.timeutils import as_utc, to_storage, utcnow
from accountguard.database.databases import auth_db
from accountguard.models.refresh_token import RefreshTokenRecord
from accountguard.models.user import User
from accountguard.schemas.auth import AccessTokenPayload, RefreshTokenPayload, TokenPair

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Field on the user document holding the refresh token generation
GENERATION_FIELD = "token_generation"


def _subject_filter(subject_id: str) -> dict:
    try:
        return {"_id": ObjectId(subject_id)}
    except (InvalidId, TypeError):
        return {"_id": subject_id}


class TokenService:
    """Issues, verifies and revokes access and refresh tokens."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        policy: TokenPolicy,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.policy = policy
        self.settings = settings or get_settings()
        self.users_collection = db[auth_db.Collections.USERS]
        self.refresh_tokens = db[auth_db.Collections.REFRESH_TOKENS]

    # ==================== Access tokens ====================

    def issue_access_token(
        self,
        subject_id: str,
        email: str,
        role: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Sign a short-lived access token. No side effects."""
        return create_token(
            {"sub": subject_id, "email": email, "role": role, "type": ACCESS_TOKEN_TYPE},
            self.settings.jwt_secret_key,
            self.policy.access_token_ttl,
            now=now,
        )

    def verify_access_token(self, token: str) -> AccessTokenPayload:
        """
        Validate an access token by signature and claims only.

        Raises:
            UnauthorizedError: If the token is malformed, expired or of the wrong type
        """
        try:
            payload = decode_token(token, self.settings.jwt_secret_key, ACCESS_TOKEN_TYPE)
            return AccessTokenPayload(**payload)
        except (JWTError, PydanticValidationError):
            raise UnauthorizedError("Could not validate credentials")

    # ==================== Refresh tokens ====================

    async def issue_refresh_token(
        self,
        subject_id: str,
        generation: Optional[int] = None,
    ) -> str:
        """
        Mint a refresh token for *subject_id*.

        The token ID is recorded as valid before the token is signed, so a
        token never leaves this method without its revocation record.

        Args:
            subject_id: Owning subject
            generation: Subject token generation (read from the store if omitted)
        """
        if generation is None:
            generation = await self._current_generation(subject_id)
            if generation is None:
                raise UnauthorizedError("Could not validate credentials")

        now = utcnow()
        token_id = secrets.token_hex(16)
        record = RefreshTokenRecord(
            token_id=token_id,
            user_id=subject_id,
            generation=generation,
            created_at=to_storage(now),
            expires_at=to_storage(now + self.policy.refresh_token_ttl),
        )
        await self.refresh_tokens.insert_one(record.model_dump(by_alias=True))

        return create_token(
            {"sub": subject_id, "tid": token_id, "gen": generation, "type": REFRESH_TOKEN_TYPE},
            self.settings.jwt_refresh_secret_key,
            self.policy.refresh_token_ttl,
            now=now,
        )

    async def issue_token_pair(self, user: User) -> TokenPair:
        """Issue an access token and a tracked refresh token for *user*."""
        refresh_token = await self.issue_refresh_token(user.id, generation=user.token_generation)
        access_token = self.issue_access_token(user.id, user.email, user.role)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.policy.access_token_ttl.total_seconds()),
        )

    async def verify_refresh_token(self, token: str) -> RefreshTokenPayload:
        """
        Validate a refresh token against its signature and the revocation index.

        Raises:
            UnauthorizedError: If the token is malformed, expired, revoked,
                belongs to a missing subject or to an older generation
        """
        try:
            claims = decode_token(token, self.settings.jwt_refresh_secret_key, REFRESH_TOKEN_TYPE)
            payload = RefreshTokenPayload(**claims)
        except (JWTError, PydanticValidationError):
            raise UnauthorizedError("Invalid refresh token")

        record = await self.refresh_tokens.find_one({"_id": payload.tid})
        if record is None or record.get("user_id") != payload.sub:
            raise UnauthorizedError("Invalid refresh token")
        if record.get("revoked"):
            raise UnauthorizedError("Refresh token revoked")
        if as_utc(record["expires_at"]) <= utcnow():
            raise UnauthorizedError("Refresh token expired")

        generation = await self._current_generation(payload.sub)
        if generation is None:
            raise UnauthorizedError("Subject no longer exists")
        if generation != payload.gen:
            raise UnauthorizedError("Refresh token revoked")

        return payload

    async def revoke_refresh_token(self, token_id: str) -> None:
        """Mark one refresh token revoked. Revoking twice is a no-op."""
        await self.refresh_tokens.update_one(
            {"_id": token_id, "revoked": False},
            {"$set": {"revoked": True, "revoked_at": to_storage(utcnow())}},
        )

    async def revoke_all_for_subject(self, subject_id: str) -> int:
        """
        Revoke every refresh token of *subject_id*, including untracked ones.

        Returns:
            Number of tracked records newly marked revoked
        """
        await self.users_collection.update_one(
            _subject_filter(subject_id),
            {"$inc": {GENERATION_FIELD: 1}},
        )
        return await self.mark_subject_tokens_revoked(subject_id)

    async def mark_subject_tokens_revoked(self, subject_id: str) -> int:
        """Flag the subject's tracked records revoked (the generation is bumped elsewhere)."""
        result = await self.refresh_tokens.update_many(
            {"user_id": subject_id, "revoked": False},
            {"$set": {"revoked": True, "revoked_at": to_storage(utcnow())}},
        )
        if result.modified_count:
            logger.info(f"Revoked {result.modified_count} refresh tokens for user {subject_id}")
        return result.modified_count

    async def _current_generation(self, subject_id: str) -> Optional[int]:
        user_doc = await self.users_collection.find_one(
            _subject_filter(subject_id), {GENERATION_FIELD: 1}
        )
        if user_doc is None:
            return None
        return user_doc.get(GENERATION_FIELD, 0)
