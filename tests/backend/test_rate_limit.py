"""
Tests for the Redis-backed login rate limiter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


class TestCheckRateLimit:

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_then_blocks(self, mock_async_redis):
        from accountguard.core.rate_limit import check_rate_limit

        results = [
            await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=3, window_seconds=60)
            for _ in range(4)
        ]

        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_counters_are_per_ip_and_endpoint(self, mock_async_redis):
        from accountguard.core.rate_limit import check_rate_limit

        await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=1, window_seconds=60)

        assert await check_rate_limit(mock_async_redis, "10.0.0.2", "/auth/login", limit=1, window_seconds=60)
        assert await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/other", limit=1, window_seconds=60)
        assert not await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=1, window_seconds=60)

    @pytest.mark.asyncio
    async def test_window_ttl_is_set_on_first_hit(self, mock_async_redis):
        from accountguard.core.rate_limit import check_rate_limit, rate_limit_key

        await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=5, window_seconds=900)

        ttl = await mock_async_redis.ttl(rate_limit_key("/auth/login", "10.0.0.1"))
        assert 0 < ttl <= 900

    @pytest.mark.asyncio
    async def test_defaults_come_from_settings(self, mock_async_redis):
        """Default is 5 attempts per window."""
        from accountguard.core.rate_limit import check_rate_limit

        results = [await check_rate_limit(mock_async_redis, "10.0.0.9", "/auth/login") for _ in range(6)]

        assert results == [True] * 5 + [False]

    @pytest.mark.asyncio
    async def test_redis_outage_fails_open(self):
        from redis.exceptions import ConnectionError
        from accountguard.core.rate_limit import check_rate_limit

        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=ConnectionError("down"))
        redis = MagicMock()
        redis.pipeline.return_value.__aenter__ = AsyncMock(return_value=pipe)
        redis.pipeline.return_value.__aexit__ = AsyncMock(return_value=False)

        assert await check_rate_limit(redis, "10.0.0.1", "/auth/login") is True

    @pytest.mark.asyncio
    async def test_counter_left_without_ttl_gets_one_on_next_hit(self, mock_async_redis):
        """A window whose TTL was never set must still expire."""
        from accountguard.core.rate_limit import check_rate_limit, rate_limit_key

        key = rate_limit_key("/auth/login", "10.0.0.1")
        await mock_async_redis.set(key, 5)
        assert await mock_async_redis.ttl(key) == -1

        allowed = await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=2, window_seconds=60)

        assert allowed is False
        assert 0 < await mock_async_redis.ttl(key) <= 60

    @pytest.mark.asyncio
    async def test_later_hits_do_not_extend_the_window(self, mock_async_redis):
        from accountguard.core.rate_limit import check_rate_limit, rate_limit_key

        key = rate_limit_key("/auth/login", "10.0.0.1")
        await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=5, window_seconds=900)
        await mock_async_redis.expire(key, 30)

        await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=5, window_seconds=900)

        assert 0 < await mock_async_redis.ttl(key) <= 30

    @pytest.mark.asyncio
    async def test_status_reports_remaining(self, mock_async_redis):
        from accountguard.core.rate_limit import check_rate_limit, get_rate_limit_status

        for _ in range(2):
            await check_rate_limit(mock_async_redis, "10.0.0.1", "/auth/login", limit=5, window_seconds=60)

        status = await get_rate_limit_status(mock_async_redis, "10.0.0.1", "/auth/login", limit=5)

        assert status["remaining"] == 3
        assert status["limit"] == 5
        assert 0 < status["reset_in_seconds"] <= 60
