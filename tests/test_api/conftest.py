"""
Fixtures for API tests: the real app wired to fake Redis and scripted providers.
"""

from collections.abc import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_orchestrator, get_provider_settings, get_redis_client
from src.api.main import app
from src.architect.gateway import ProviderGateway
from src.architect.orchestrator import ArchitectOrchestrator
from src.architect.providers import LLMProvider, ProviderSettings
from src.shared.redis_client import RedisClient


@pytest.fixture
async def client(store: RedisClient) -> AsyncGenerator[AsyncClient, None]:
    """Test client for the app with Redis replaced by the fake store."""
    app.dependency_overrides[get_redis_client] = lambda: store
    app.dependency_overrides[get_provider_settings] = lambda: ProviderSettings(
        default_provider="openai", openai_api_key="sk-test"
    )
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def use_providers(store: RedisClient) -> Callable[..., None]:
    """Route /chat turns through the given provider doubles."""

    def _use(primary: LLMProvider, fallback: LLMProvider | None = None) -> None:
        gateway = ProviderGateway(primary, fallback)
        app.dependency_overrides[get_orchestrator] = lambda: ArchitectOrchestrator(store, gateway)

    return _use
