"""
Rate limiting utilities.

Fixed-window counters in Redis: INCR the key and give it a TTL in the same
transaction. EXPIRE NX only sets a TTL on a key that has none, so a window
left without one by an earlier failure is repaired on the next hit. Redis
being unavailable never blocks a login.
"""
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from accountguard.config import get_settings

logger = logging.getLogger(__name__)


def rate_limit_key(endpoint: str, ip: str) -> str:
    return f"ratelimit:{endpoint}:{ip}"


async def check_rate_limit(
    redis: Redis,
    ip: str,
    endpoint: str,
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
) -> bool:
    """
    Check if a request should be rate limited.

    Args:
        redis: Redis client
        ip: Client IP address
        endpoint: Endpoint identifier (e.g., "/auth/login")
        limit: Max requests allowed (defaults to config value)
        window_seconds: Time window in seconds (defaults to config value)

    Returns:
        True if request is allowed, False if rate limited
    """
    settings = get_settings()
    if limit is None:
        limit = settings.login_rate_limit_attempts
    if window_seconds is None:
        window_seconds = settings.login_rate_limit_window_seconds

    key = rate_limit_key(endpoint, ip)
    try:
        async with redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            current, _ = await pipe.execute()
    except RedisError as e:
        logger.warning(f"Rate limiter unavailable for {endpoint}: {e}")
        return True

    if current > limit:
        logger.warning(f"Rate limit exceeded on {endpoint} for {ip} ({current}/{limit})")
        return False
    return True


async def get_rate_limit_status(
    redis: Redis,
    ip: str,
    endpoint: str,
    limit: Optional[int] = None,
) -> dict:
    """
    Get current rate limit status for debugging/monitoring.

    Returns:
        Dict with remaining requests, limit and seconds until reset
    """
    if limit is None:
        limit = get_settings().login_rate_limit_attempts

    key = rate_limit_key(endpoint, ip)
    current = int(await redis.get(key) or 0)
    ttl = await redis.ttl(key)
    return {
        "remaining": max(limit - current, 0),
        "limit": limit,
        "reset_in_seconds": ttl if ttl and ttl > 0 else None,
    }
