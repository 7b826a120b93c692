"""
Liveness and readiness probes.
"""
import logging

from fastapi import APIRouter, status
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError

from accountguard.database.connections import get_mongo_client, get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def health_check():
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
)
async def readiness_check():
    """
    Check the credential store and the rate limiter backend.

    MongoDB is required for every login. Redis only backs the per-IP
    rate limiter, which lets requests through when it is down, so a Redis
    outage reports "degraded" rather than "unhealthy".
    """
    checks = {"mongodb": "unknown", "redis": "unknown"}

    try:
        client = await get_mongo_client()
        await client.admin.command("ping")
        checks["mongodb"] = "healthy"
    except PyMongoError as e:
        logger.warning(f"MongoDB readiness check failed: {e}")
        checks["mongodb"] = "unhealthy"

    try:
        redis = await get_redis_client()
        await redis.ping()
        checks["redis"] = "healthy"
    except RedisError as e:
        logger.warning(f"Redis readiness check failed: {e}")
        checks["redis"] = "unhealthy"

    if checks["mongodb"] != "healthy":
        overall = "unhealthy"
    elif checks["redis"] != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return {"status": overall, "checks": checks}
