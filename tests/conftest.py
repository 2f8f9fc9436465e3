"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import fakeredis.aioredis
import pytest

from src.architect.providers import ProviderResponse, ToolInvocation, ToolResult
from src.architect.tools import SAVE_DOCUMENT_TOOL
from src.shared.redis_client import RedisClient


class ScriptedProvider:
    """
    LLMProvider double that replays queued responses.

    Queue a ProviderResponse to return it or an Exception to raise it.
    Every call is recorded with its history, instruction and tools flag.
    """

    def __init__(self, name: str, responses: list[ProviderResponse | Exception]) -> None:
        self.name = name
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def invoke(
        self,
        history: list[dict[str, Any]],
        instruction: str,
        tools: bool = True,
    ) -> ProviderResponse:
        self.calls.append({"history": history, "instruction": instruction, "tools": tools})
        if not self._responses:
            raise AssertionError(f"{self.name} called more times than scripted")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def extend_with_tool_results(
        self,
        history: list[dict[str, Any]],
        response: ProviderResponse,
        results: list[ToolResult],
    ) -> list[dict[str, Any]]:
        return [
            *history,
            {"role": "assistant", "content": response.text, "tool_calls": response.tool_invocations},
            *(
                {"role": "tool", "tool_call_id": r.invocation_id, "content": r.content}
                for r in results
            ),
        ]


@pytest.fixture
async def fake_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
    """Provide a fake Redis client for testing."""
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
async def store(fake_redis: fakeredis.aioredis.FakeRedis) -> RedisClient:
    """RedisClient backed by fake Redis."""
    client = RedisClient()
    client._client = fake_redis
    return client


@pytest.fixture
def sample_session_id() -> str:
    return "sess_01J8Z6Q4M5N7P9R2T4V6X8Z0B1"


@pytest.fixture
def sample_external_id() -> str:
    return "ext_acme_user_42"


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    """Factory for ScriptedProvider doubles."""

    def _make(name: str, *responses: ProviderResponse | Exception) -> ScriptedProvider:
        return ScriptedProvider(name, list(responses))

    return _make


@pytest.fixture
def save_call() -> Callable[..., ToolInvocation]:
    """Factory for save_specification_document invocations."""

    def _make(
        document_type: str,
        invocation_id: str = "call_1",
        **overrides: Any,
    ) -> ToolInvocation:
        arguments = {
            "filename": f"{document_type}.md",
            "content": f"# {document_type}\n\nGenerated content.",
            "document_type": document_type,
            "description": f"The {document_type} document",
            "skip_technical_summary": True,
        }
        arguments.update(overrides)
        return ToolInvocation(id=invocation_id, name=SAVE_DOCUMENT_TOOL, arguments=arguments)

    return _make


@pytest.fixture
def seed_documents(store: RedisClient) -> Callable[..., Any]:
    """Factory that saves placeholder documents for the given types."""

    async def _seed(session_id: str, external_id: str, document_types: Any) -> None:
        for doc_type in document_types:
            await store.create_document(
                session_id,
                external_id,
                doc_type,
                f"{doc_type}.md",
                f"# {doc_type}",
                f"The {doc_type} document",
            )

    return _seed
