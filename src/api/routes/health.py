"""
Health check endpoint.
"""

from typing import Any

from fastapi import APIRouter

from src.api.dependencies import ProviderSettingsDep, RedisClientDep

router = APIRouter()

SERVICE_VERSION = "0.1.0"


async def check_redis_connection(redis: RedisClientDep) -> str:
    """Check if Redis is reachable."""
    return "connected" if await redis.ping() else "disconnected"


@router.get("/health")
async def health_check(redis: RedisClientDep, settings: ProviderSettingsDep) -> dict[str, Any]:
    """
    Health check endpoint reporting service connectivity.

    Returns:
        Health status with service connection states and configured providers.
    """
    redis_status = await check_redis_connection(redis)
    status = "healthy" if redis_status == "connected" else "degraded"

    return {
        "status": status,
        "services": {
            "redis": redis_status,
        },
        "providers": {
            "default": settings.default_provider,
            "openai": settings.has_openai,
            "claude": settings.has_claude,
        },
        "version": SERVICE_VERSION,
    }
