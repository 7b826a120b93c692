"""
Authentication service: login, token rotation, logout and password flows.

This is the only component the HTTP layer calls. It composes the login
attempt ledger, the lockout evaluator, the risk assessor and the token
service, and writes the audit trail.
"""
import logging
import math
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from accountguard.config import Settings, get_settings
from accountguard.core.errors import NotFoundError, UnauthorizedError, ValidationError
from accountguard.core.policy import AuthPolicy
from accountguard.core.security import (
    dummy_verify,
    hash_password,
    hash_token,
    normalize_email,
    validate_password_strength,
    verify_password,
)
from accountguard.core.timeutils import as_utc, to_storage, utcnow
from accountguard.database.databases import auth_db
from accountguard.models.audit import AuditAction, AuditEvent
from accountguard.models.login_attempt import LoginAttempt
from accountguard.models.user import User
from accountguard.schemas.auth import LoginResponse, TokenPair
from accountguard.schemas.protection import LockoutDecision, LoginStats, RiskAction
from accountguard.schemas.user import PublicUser
from accountguard.services.audit_service import AuditService
from accountguard.services.lockout import LockoutEvaluator
from accountguard.services.login_ledger import LoginAttemptLedger
from accountguard.services.risk import RiskAssessor
from accountguard.services.token_service import GENERATION_FIELD, TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
MAX_STATS_WINDOW_HOURS = 168

_USER_DATETIME_FIELDS = ("locked_until", "last_failed_login", "last_login", "created_at")


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        policy: Optional[AuthPolicy] = None,
        audit: Optional[AuditService] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize with auth database.

        Args:
            db: auth_db database handle
            policy: Lockout, risk and token policy (built from settings if omitted)
            audit: Audit sink (writes to auth_db.audit_logs if omitted)
            clock: Source of the current time, for lockout and risk windows
            settings: Application settings
        """
        self.db = db
        self.settings = settings or get_settings()
        self.policy = policy or AuthPolicy.from_settings(self.settings)
        self.clock = clock or utcnow
        self.users_collection = db[auth_db.Collections.USERS]

        self.ledger = LoginAttemptLedger(db)
        self.lockout = LockoutEvaluator(self.ledger, self.policy.lockout)
        self.risk = RiskAssessor(self.ledger, self.policy.risk)
        self.tokens = TokenService(db, self.policy.tokens, self.settings)
        self.audit = audit or AuditService(db)

    # ==================== Login ====================

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str,
        user_agent: Optional[str] = None,
    ) -> LoginResponse:
        """
        Authenticate a credential presentation and issue a token pair.

        Every rejection other than a disabled account or an active lock
        carries the same message, so callers cannot tell an unknown email
        from a wrong password.

        Raises:
            UnauthorizedError: If the login is rejected for any reason
        """
        email = normalize_email(email)
        now = self.clock()
        user = await self.get_user_by_email(email)

        if user is None:
            dummy_verify()
            await self._audit_login_failed(
                None, email, "unknown_email", ip_address, user_agent
            )
            raise UnauthorizedError(INVALID_CREDENTIALS)

        decision = await self.lockout.check(email, now=now)
        if decision.locked:
            remaining = max(1, math.ceil((decision.unlock_at - now).total_seconds() / 60))
            await self._record_attempt(email, user.id, ip_address, user_agent, False, now)
            await self._audit_login_failed(
                user.id,
                email,
                "account_locked",
                ip_address,
                user_agent,
                attempts=decision.attempts,
                remaining_minutes=remaining,
            )
            raise UnauthorizedError(
                "Account locked due to too many failed attempts. "
                f"Try again in {remaining} minutes."
            )

        if not user.is_active:
            await self._audit_login_failed(
                user.id, email, "account_disabled", ip_address, user_agent
            )
            raise UnauthorizedError("Account is disabled")

        if not verify_password(password, user.hashed_password):
            await self._record_attempt(email, user.id, ip_address, user_agent, False, now)
            await self._audit_login_failed(
                user.id, email, "invalid_password", ip_address, user_agent
            )
            raise UnauthorizedError(INVALID_CREDENTIALS)

        # Scored before the success is recorded so it is not its own history
        assessment = await self.risk.assess(
            email, ip_address, user_agent, user_id=user.id, now=now
        )
        risk_details = {
            "risk_score": assessment.score,
            "risk_factors": assessment.factors,
            "risk_action": assessment.action.value,
        }
        if assessment.action != RiskAction.ALLOW:
            logger.warning(
                f"Risky login for user {user.id} from {ip_address}: "
                f"score={assessment.score} factors={assessment.factors}"
            )

        if assessment.action == RiskAction.BLOCK and self.policy.risk.block_high_risk_logins:
            await self._record_attempt(email, user.id, ip_address, user_agent, False, now)
            await self._audit_login_failed(
                user.id, email, "high_risk", ip_address, user_agent, **risk_details
            )
            raise UnauthorizedError(INVALID_CREDENTIALS)

        await self._record_attempt(email, user.id, ip_address, user_agent, True, now)
        await self.users_collection.update_one(
            {"_id": ObjectId(user.id)},
            {
                "$set": {
                    "failed_attempts": 0,
                    "locked_until": None,
                    "last_failed_login": None,
                    "last_login": to_storage(now),
                }
            },
        )
        user = user.model_copy(
            update={
                "failed_attempts": 0,
                "locked_until": None,
                "last_failed_login": None,
                "last_login": as_utc(now),
            }
        )

        pair = await self.tokens.issue_token_pair(user)
        await self._write_audit(
            AuditAction.LOGIN,
            user.id,
            details={"email": email, **risk_details},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {user.id} logged in from {ip_address}")

        return LoginResponse(**pair.model_dump(), user=self.to_public_user(user))

    # ==================== Sessions ====================

    async def refresh(
        self,
        refresh_token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> TokenPair:
        """
        Rotate a refresh token into a new token pair.

        The consumed token stays valid unless revoke_on_rotation is set.

        Raises:
            UnauthorizedError: On any verification failure (cause is logged, not returned)
        """
        if not refresh_token:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        try:
            payload = await self.tokens.verify_refresh_token(refresh_token)
        except UnauthorizedError as e:
            logger.info(f"Refresh rejected: {e.message}")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = await self.get_user_by_id(payload.sub)
        if user is None or not user.is_active:
            logger.info(f"Refresh rejected for missing or disabled user {payload.sub}")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        revoke_previous = self.policy.tokens.revoke_on_rotation
        if revoke_previous:
            await self.tokens.revoke_refresh_token(payload.tid)

        pair = await self.tokens.issue_token_pair(user)
        await self._write_audit(
            AuditAction.TOKEN_REFRESHED,
            user.id,
            details={"previous_revoked": revoke_previous},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return pair

    async def logout(
        self,
        refresh_token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Revoke *refresh_token* if it is valid. Never raises."""
        if not refresh_token:
            return

        try:
            payload = await self.tokens.verify_refresh_token(refresh_token)
        except UnauthorizedError as e:
            logger.debug(f"Logout with unusable refresh token: {e.message}")
            return

        try:
            await self.tokens.revoke_refresh_token(payload.tid)
        except PyMongoError as e:
            logger.error(f"Failed to revoke refresh token on logout: {e}")
            return

        await self._write_audit(
            AuditAction.LOGOUT,
            payload.sub,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {payload.sub} logged out")

    # ==================== Passwords ====================

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Change a password after verifying the current one.

        Every refresh token of the subject is revoked afterwards.

        Raises:
            UnauthorizedError: If the user is unknown or the current password is wrong
            ValidationError: If the new password is too weak
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UnauthorizedError("Could not validate credentials")

        if not verify_password(current_password, user.hashed_password):
            raise UnauthorizedError("Current password is incorrect")

        strength = validate_password_strength(new_password)
        if not strength.valid:
            raise ValidationError(strength.reason)

        # Password and generation land together in one document update
        await self.users_collection.update_one(
            {"_id": ObjectId(user.id)},
            {
                "$set": {"hashed_password": hash_password(new_password)},
                "$inc": {GENERATION_FIELD: 1},
            },
        )
        revoked = await self.tokens.mark_subject_tokens_revoked(user.id)

        await self._write_audit(
            AuditAction.PASSWORD_CHANGED,
            user.id,
            resource_type="USER",
            details={"revoked_tokens": revoked},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"Password changed for user {user.id}")

    async def request_password_reset(self, identifier: str) -> str:
        """
        Issue a password reset token for *identifier*.

        Returns:
            The raw token (valid for the reset TTL), or "" when the identifier
            is unknown. Only its SHA-256 hash is stored.
        """
        user = await self.get_user_by_email(normalize_email(identifier))
        if user is None:
            logger.info("Password reset requested for unknown identifier")
            return ""

        now = self.clock()
        token = secrets.token_hex(32)
        # Overwriting the single slot invalidates any earlier token
        await self.users_collection.update_one(
            {"_id": ObjectId(user.id)},
            {
                "$set": {
                    "password_reset": {
                        "token_hash": hash_token(token),
                        "expires_at": to_storage(now + self.policy.tokens.password_reset_ttl),
                        "used": False,
                        "created_at": to_storage(now),
                    }
                }
            },
        )
        logger.info(f"Password reset token issued for user {user.id}")
        return token

    async def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Redeem a reset token and set a new password.

        Raises:
            ValidationError: If the token is empty, unknown, used or expired,
                or if the new password is too weak
        """
        if not token:
            raise ValidationError(INVALID_RESET_TOKEN)

        now = self.clock()
        token_filter = {
            "password_reset.token_hash": hash_token(token),
            "password_reset.used": False,
            "password_reset.expires_at": {"$gt": to_storage(now)},
        }
        if await self.users_collection.find_one(token_filter, {"_id": 1}) is None:
            raise ValidationError(INVALID_RESET_TOKEN)

        strength = validate_password_strength(new_password)
        if not strength.valid:
            raise ValidationError(strength.reason)

        # Token check, password, used flag and generation bump in one update
        user_doc = await self.users_collection.find_one_and_update(
            token_filter,
            {
                "$set": {
                    "hashed_password": hash_password(new_password),
                    "password_reset.used": True,
                    "failed_attempts": 0,
                    "locked_until": None,
                    "last_failed_login": None,
                },
                "$inc": {GENERATION_FIELD: 1},
            },
            return_document=ReturnDocument.AFTER,
        )
        if user_doc is None:
            # Redeemed concurrently between the check and the update
            raise ValidationError(INVALID_RESET_TOKEN)

        user_id = str(user_doc["_id"])
        revoked = await self.tokens.mark_subject_tokens_revoked(user_id)

        await self._write_audit(
            AuditAction.PASSWORD_RESET,
            user_id,
            resource_type="USER",
            details={"revoked_tokens": revoked},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"Password reset completed for user {user_id}")

    # ==================== Administration ====================

    async def get_login_stats(self, hours: int = 24) -> LoginStats:
        """
        Login attempt statistics over the last *hours*.

        Raises:
            ValidationError: If hours is outside 1..168
        """
        if not 1 <= hours <= MAX_STATS_WINDOW_HOURS:
            raise ValidationError(f"hours must be between 1 and {MAX_STATS_WINDOW_HOURS}")
        return await self.ledger.stats_since(self.clock() - timedelta(hours=hours))

    async def cleanup_old_attempts(self) -> int:
        """Purge ledger entries past retention. A store failure reports 0."""
        cutoff = self.clock() - self.policy.attempt_retention
        try:
            deleted = await self.ledger.purge_older_than(cutoff)
        except PyMongoError as e:
            logger.error(f"Login attempt cleanup failed: {e}")
            return 0
        logger.info(f"Deleted {deleted} login attempts older than {cutoff.isoformat()}")
        return deleted

    async def check_lockout(self, email: str) -> LockoutDecision:
        return await self.lockout.check(normalize_email(email), now=self.clock())

    async def revoke_user_sessions(
        self,
        user_id: str,
        actor_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        """
        Revoke every refresh token of a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        revoked = await self.tokens.revoke_all_for_subject(user.id)
        await self._write_audit(
            AuditAction.SESSIONS_REVOKED,
            actor_id or user.id,
            resource_type="USER",
            resource_id=user.id,
            details={"revoked_tokens": revoked},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return revoked

    # ==================== Users ====================

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ObjectId as string

        Returns:
            User model or None if not found (or if the ID is malformed)
        """
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None

        user_doc = await self.users_collection.find_one({"_id": object_id})
        if not user_doc:
            return None
        return self._doc_to_user(user_doc)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email.

        Args:
            email: User email address

        Returns:
            User model or None if not found
        """
        user_doc = await self.users_collection.find_one({"email": email})
        if not user_doc:
            return None
        return self._doc_to_user(user_doc)

    @staticmethod
    def to_public_user(user: User) -> PublicUser:
        return PublicUser(
            id=user.id,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            last_login=user.last_login,
        )

    # ==================== Internals ====================

    @staticmethod
    def _doc_to_user(user_doc: dict) -> User:
        user_doc = dict(user_doc)
        user_doc["_id"] = str(user_doc["_id"])
        for field in _USER_DATETIME_FIELDS:
            user_doc[field] = as_utc(user_doc.get(field))
        reset = user_doc.get("password_reset")
        if reset:
            user_doc["password_reset"] = {
                **reset,
                "expires_at": as_utc(reset["expires_at"]),
                "created_at": as_utc(reset.get("created_at")),
            }
        return User(**user_doc)

    async def _record_attempt(
        self,
        email: str,
        user_id: Optional[str],
        ip_address: str,
        user_agent: Optional[str],
        successful: bool,
        now: datetime,
    ) -> None:
        await self.ledger.record(
            LoginAttempt(
                email=email,
                user_id=user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                successful=successful,
                attempted_at=now,
            )
        )

    async def _audit_login_failed(
        self,
        user_id: Optional[str],
        email: str,
        reason: str,
        ip_address: str,
        user_agent: Optional[str],
        **details,
    ) -> None:
        logger.info(f"Login failed for {email} from {ip_address}: {reason}")
        await self._write_audit(
            AuditAction.LOGIN_FAILED,
            user_id,
            resource_id=user_id or email,
            details={"email": email, "reason": reason, **details},
            ip_address=ip_address,
            user_agent=user_agent,
        )

    async def _write_audit(
        self,
        action: AuditAction,
        user_id: Optional[str],
        resource_type: str = "AUTH",
        resource_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        await self.audit.write(
            AuditEvent(
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id or user_id,
                details=details or {},
                ip_address=ip_address,
                user_agent=user_agent,
                created_at=self.clock(),
            )
        )
