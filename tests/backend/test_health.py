"""
Tests for health check endpoints.

These tests verify:
- Basic health endpoint returns 200
- Readiness reports MongoDB and Redis separately
- A Redis outage degrades, a MongoDB outage is unhealthy
"""

import pytest
from unittest.mock import AsyncMock, patch
from pymongo.errors import ServerSelectionTimeoutError
from redis.exceptions import ConnectionError as RedisConnectionError


def _mongo(ok: bool = True):
    client = AsyncMock()
    if ok:
        client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("down"))
    return client


def _redis(ok: bool = True):
    redis = AsyncMock()
    if ok:
        redis.ping = AsyncMock(return_value=True)
    else:
        redis.ping = AsyncMock(side_effect=RedisConnectionError("down"))
    return redis


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    @pytest.mark.asyncio
    async def test_health_endpoint_returns_200_when_api_running(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestReadinessEndpoint:
    """Tests for GET /health/ready endpoint."""

    @pytest.mark.parametrize(
        "mongo_ok, redis_ok, overall",
        [
            (True, True, "healthy"),
            (True, False, "degraded"),
            (False, True, "unhealthy"),
            (False, False, "unhealthy"),
        ],
    )
    @pytest.mark.asyncio
    async def test_readiness_status(self, async_client, mongo_ok, redis_ok, overall):
        with patch("accountguard.routers.health.get_mongo_client", AsyncMock(return_value=_mongo(mongo_ok))), \
             patch("accountguard.routers.health.get_redis_client", AsyncMock(return_value=_redis(redis_ok))):

            response = await async_client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == overall
        assert data["checks"]["mongodb"] == ("healthy" if mongo_ok else "unhealthy")
        assert data["checks"]["redis"] == ("healthy" if redis_ok else "unhealthy")
