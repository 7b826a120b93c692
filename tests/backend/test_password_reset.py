"""
Tests for the password reset flow.

These tests cover:
- Enumeration resistance for unknown identifiers
- Single active token per owner
- Single use, expiry, and session revocation on reset
"""

from datetime import timedelta

import pytest
import pytest_asyncio

EMAIL = "reset@example.com"
PASSWORD = "SecurePassword123!"
NEW_PASSWORD = "BrandNewPass456!"


@pytest_asyncio.fixture
async def user_id(seed_user):
    return await seed_user(EMAIL, PASSWORD)


class TestRequestPasswordReset:

    @pytest.mark.asyncio
    async def test_unknown_identifier_returns_empty_token_and_writes_nothing(
        self, auth_service, mock_auth_db, user_id
    ):
        users_before = await mock_auth_db.users.find({}).to_list(length=None)

        token = await auth_service.request_password_reset("nobody@example.com")

        assert token == ""
        assert await mock_auth_db.users.find({}).to_list(length=None) == users_before
        assert await mock_auth_db.login_attempts.count_documents({}) == 0
        assert await mock_auth_db.refresh_tokens.count_documents({}) == 0
        assert await mock_auth_db.audit_logs.count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_known_identifier_stores_only_the_hash(self, auth_service, mock_auth_db, user_id):
        from bson import ObjectId
        from accountguard.core.security import hash_token

        token = await auth_service.request_password_reset(EMAIL)

        assert len(token) == 64
        user_doc = await mock_auth_db.users.find_one({"_id": ObjectId(user_id)})
        reset = user_doc["password_reset"]
        assert reset["token_hash"] == hash_token(token)
        assert token not in str(user_doc)
        assert reset["used"] is False
        assert reset["expires_at"] - reset["created_at"] == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_mixed_case_domain_finds_the_account(self, auth_service, mock_auth_db, user_id):
        from bson import ObjectId
        from accountguard.core.security import hash_token

        token = await auth_service.request_password_reset("reset@EXAMPLE.com")

        assert token
        user_doc = await mock_auth_db.users.find_one({"_id": ObjectId(user_id)})
        assert user_doc["password_reset"]["token_hash"] == hash_token(token)

        await auth_service.reset_password(token, NEW_PASSWORD)
        result = await auth_service.login("reset@EXAMPLE.com", NEW_PASSWORD, "10.0.0.1")
        assert result.user.id == user_id

    @pytest.mark.asyncio
    async def test_new_token_invalidates_previous_one(self, auth_service, user_id):
        from accountguard.core.errors import ValidationError

        first = await auth_service.request_password_reset(EMAIL)
        second = await auth_service.request_password_reset(EMAIL)

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.reset_password(first, NEW_PASSWORD)
        assert exc_info.value.message == "Invalid or expired reset token"

        await auth_service.reset_password(second, NEW_PASSWORD)


class TestResetPassword:

    @pytest.mark.asyncio
    async def test_reset_sets_password_and_is_single_use(self, auth_service, mock_auth_db, user_id):
        from accountguard.core.errors import ValidationError

        token = await auth_service.request_password_reset(EMAIL)

        await auth_service.reset_password(token, NEW_PASSWORD)

        result = await auth_service.login(EMAIL, NEW_PASSWORD, "10.0.0.1")
        assert result.user.id == user_id
        with pytest.raises(ValidationError):
            await auth_service.reset_password(token, "AnotherPass789!")
        assert "PASSWORD_RESET" in [d["action"] for d in await mock_auth_db.audit_logs.find({}).to_list(length=None)]

    @pytest.mark.asyncio
    async def test_reset_revokes_all_sessions(self, auth_service, user_id):
        from accountguard.core.errors import UnauthorizedError

        login = await auth_service.login(EMAIL, PASSWORD, "10.0.0.1")
        token = await auth_service.request_password_reset(EMAIL)

        await auth_service.reset_password(token, NEW_PASSWORD)

        with pytest.raises(UnauthorizedError):
            await auth_service.refresh(login.refresh_token)

    @pytest.mark.asyncio
    async def test_reset_clears_legacy_counters(self, auth_service, mock_auth_db, seed_user):
        from bson import ObjectId

        user_id = await seed_user("legacy-reset@example.com", PASSWORD, failed_attempts=7)
        token = await auth_service.request_password_reset("legacy-reset@example.com")

        await auth_service.reset_password(token, NEW_PASSWORD)

        user_doc = await mock_auth_db.users.find_one({"_id": ObjectId(user_id)})
        assert user_doc["failed_attempts"] == 0
        assert user_doc["password_reset"]["used"] is True
        assert user_doc["token_generation"] == 1

    @pytest.mark.parametrize("token", ["", "0" * 64, "not-a-token"])
    @pytest.mark.asyncio
    async def test_unknown_tokens_are_rejected(self, auth_service, user_id, token):
        from accountguard.core.errors import ValidationError

        await auth_service.request_password_reset(EMAIL)

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.reset_password(token, NEW_PASSWORD)
        assert exc_info.value.message == "Invalid or expired reset token"

    @pytest.mark.asyncio
    async def test_expired_token_is_rejected(self, mock_auth_db, auth_policy, user_id, fixed_now):
        from accountguard.core.errors import ValidationError
        from accountguard.services.auth_service import AuthService

        current = {"now": fixed_now}
        service = AuthService(mock_auth_db, policy=auth_policy, clock=lambda: current["now"])
        token = await service.request_password_reset(EMAIL)

        current["now"] = fixed_now + timedelta(hours=1)

        with pytest.raises(ValidationError):
            await service.reset_password(token, NEW_PASSWORD)

    @pytest.mark.asyncio
    async def test_weak_password_keeps_token_usable(self, auth_service, user_id):
        from accountguard.core.errors import ValidationError

        token = await auth_service.request_password_reset(EMAIL)

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.reset_password(token, "short")
        assert exc_info.value.message == "Password must be at least 8 characters"

        await auth_service.reset_password(token, NEW_PASSWORD)
