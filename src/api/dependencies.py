"""
FastAPI dependencies for dependency injection.

Provides the Redis store, provider settings and the interview orchestrator.
"""

import functools
import os
from typing import Annotated

import structlog
from fastapi import Depends

from src.architect.gateway import ProviderGateway, build_gateway
from src.architect.orchestrator import ArchitectOrchestrator
from src.architect.providers import ProviderSettings
from src.architect.turns import ProviderUnavailableError
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)

# Global instances
_redis_client: RedisClient | None = None
_provider_settings: ProviderSettings | None = None
_gateway: ProviderGateway | None = None


async def get_redis_client() -> RedisClient:
    """
    Get the Redis client instance.

    Creates and connects the client on first call.
    """
    global _redis_client
    if _redis_client is None:
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        _redis_client = RedisClient(redis_url)
        await _redis_client.connect()
    return _redis_client


def get_provider_settings() -> ProviderSettings:
    """Provider settings read from the environment on first call."""
    global _provider_settings
    if _provider_settings is None:
        _provider_settings = ProviderSettings.from_env()
    return _provider_settings


def resolve_gateway(settings: ProviderSettings) -> ProviderGateway:
    """
    Get the provider gateway.

    Built lazily so the service can start (and serve health checks and
    finished sessions) before API keys are configured.

    Raises:
        ProviderUnavailableError: If no provider can be built from settings.
    """
    global _gateway
    if _gateway is None:
        try:
            _gateway = build_gateway(settings)
        except ValueError as e:
            logger.error("AI provider not configured", error=str(e))
            raise ProviderUnavailableError("AI provider is not configured") from e
    return _gateway


async def get_orchestrator(
    redis: Annotated[RedisClient, Depends(get_redis_client)],
    settings: Annotated[ProviderSettings, Depends(get_provider_settings)],
) -> ArchitectOrchestrator:
    """Orchestrator bound to the shared store; the gateway is resolved per turn on demand."""
    return ArchitectOrchestrator(redis, functools.partial(resolve_gateway, settings))


async def close_dependencies() -> None:
    """Release connections held by the global instances."""
    global _redis_client, _gateway
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
    _gateway = None


# Type aliases for dependency injection
RedisClientDep = Annotated[RedisClient, Depends(get_redis_client)]
ProviderSettingsDep = Annotated[ProviderSettings, Depends(get_provider_settings)]
OrchestratorDep = Annotated[ArchitectOrchestrator, Depends(get_orchestrator)]
