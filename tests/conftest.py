"""
Global test fixtures for AccountGuard.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor)
- Mock Redis (fakeredis)
- Test user data
- A fixed clock for deterministic window arithmetic
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Settings are cached on first import, so the test environment goes first.
# Low bcrypt cost keeps hashing fast in tests.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("RISK_LOCAL_TIMEZONE", "UTC")

# Add repo root (workers) and backend (accountguard) to path for imports
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))
sys.path.insert(0, str(ROOT_DIR / "backend"))


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.

    This provides an in-memory MongoDB that behaves like the real thing
    for testing purposes.
    """
    from mongomock_motor import AsyncMongoMockClient

    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest_asyncio.fixture
async def mock_auth_db(mock_async_mongo_client):
    """Provide mock auth_db database."""
    db = mock_async_mongo_client["auth_db"]
    # Unique email like the real app
    await db.users.create_index("email", unique=True)
    yield db


# =============================================================================
# Redis Fixtures (fakeredis)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_redis():
    """
    Create an async mock Redis client using fakeredis.
    """
    import fakeredis

    redis_client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield redis_client
    await redis_client.flushall()
    await redis_client.aclose()


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture
def test_user_data() -> dict:
    """Credentials of a regular test user."""
    return {
        "email": "testuser@example.com",
        "password": "SecurePassword123!",
    }


@pytest.fixture
def test_admin_data() -> dict:
    """Credentials of an admin test user."""
    return {
        "email": "admin@example.com",
        "password": "AdminPassword123!",
        "role": "admin",
    }


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def fixed_now() -> datetime:
    """
    A fixed instant inside usual hours (UTC), with whole seconds.

    MongoDB keeps millisecond precision only, so sub-second parts would not
    survive a round trip.
    """
    return datetime(2024, 10, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def assert_datetime_recent():
    """
    Fixture providing a helper to assert a datetime is recent.

    Usage:
        def test_something(assert_datetime_recent):
            assert_datetime_recent(response["last_login"], max_age_seconds=60)
    """
    def _assert_recent(datetime_str: str, max_age_seconds: int = 60):
        if datetime_str.endswith("Z"):
            datetime_str = datetime_str.replace("Z", "+00:00")

        dt = datetime.fromisoformat(datetime_str)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        now = datetime.now(timezone.utc)
        age = (now - dt).total_seconds()

        assert age < max_age_seconds, f"Datetime {datetime_str} is {age}s old, expected < {max_age_seconds}s"
        assert age >= -1, f"Datetime {datetime_str} is in the future"

    return _assert_recent
