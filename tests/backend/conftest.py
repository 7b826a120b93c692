"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with seeded users, services
wired to the mock database and an HTTP client with dependencies overridden.
"""

from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio


# =============================================================================
# Seed Helpers
# =============================================================================

@pytest.fixture
def seed_user(mock_auth_db):
    """
    Factory inserting a user with a real bcrypt hash.

    Usage:
        user_id = await seed_user("someone@example.com", "Password1!")
    """
    from accountguard.core.security import hash_password

    async def _seed(
        email: str,
        password: str,
        role: str = "user",
        is_active: bool = True,
        **fields,
    ) -> str:
        doc = {
            "email": email,
            "hashed_password": hash_password(password),
            "role": role,
            "is_active": is_active,
            "first_name": "Test",
            "last_name": "User",
            "failed_attempts": 0,
            "locked_until": None,
            "token_generation": 0,
            "created_at": datetime(2024, 1, 1),
            **fields,
        }
        result = await mock_auth_db.users.insert_one(doc)
        return str(result.inserted_id)

    return _seed


@pytest.fixture
def seed_attempts(mock_auth_db):
    """
    Factory inserting login attempts directly into the ledger collection.

    Usage:
        await seed_attempts("a@example.com", successful=False, times=[t1, t2])
    """
    async def _seed(
        email: str,
        successful: bool,
        times: list[datetime],
        ip_address: str = "10.0.0.1",
        user_id: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        for attempted_at in times:
            await mock_auth_db.login_attempts.insert_one({
                "email": email,
                "user_id": user_id,
                "ip_address": ip_address,
                "user_agent": user_agent,
                "successful": successful,
                "attempted_at": attempted_at.replace(tzinfo=None),
            })

    return _seed


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def auth_policy():
    """Default policy with the risk clock pinned to UTC."""
    from accountguard.core.policy import AuthPolicy, RiskPolicy

    return AuthPolicy(risk=RiskPolicy(local_timezone="UTC"))


@pytest.fixture
def auth_service(mock_auth_db, auth_policy):
    """AuthService on the mock database with the real clock."""
    from accountguard.services.auth_service import AuthService

    return AuthService(mock_auth_db, policy=auth_policy)


@pytest.fixture
def token_service(mock_auth_db, auth_policy):
    from accountguard.services.token_service import TokenService

    return TokenService(mock_auth_db, auth_policy.tokens)


@pytest.fixture
def ledger(mock_auth_db):
    from accountguard.services.login_ledger import LoginAttemptLedger

    return LoginAttemptLedger(mock_auth_db)


# =============================================================================
# App Override Helpers
# =============================================================================

@pytest.fixture
def app(auth_service, mock_async_redis):
    """
    The FastAPI app with the auth service and Redis overridden.

    Lifespan does not run under ASGITransport, so no real connection is made.
    """
    from accountguard.database.connections import get_redis_client
    from accountguard.dependencies.auth import get_auth_service
    from accountguard.main import app

    async def _auth_service():
        return auth_service

    async def _redis():
        return mock_async_redis

    app.dependency_overrides[get_auth_service] = _auth_service
    app.dependency_overrides[get_redis_client] = _redis
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app):
    """
    Create an async test client.

    Use this for testing async endpoints.
    """
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
