"""
Tests for provider selection and one-shot fallback.
"""

from unittest.mock import patch

import pytest

from src.architect.claude_client import ClaudeClient
from src.architect.gateway import ProviderGateway, build_gateway
from src.architect.openai_client import OpenAIClient
from src.architect.providers import ProviderError, ProviderResponse, ProviderSettings

HISTORY = [{"role": "user", "content": "I want to build a court booking app"}]


class TestSend:
    @pytest.mark.asyncio
    async def test_primary_success(self, scripted_provider):
        primary = scripted_provider("claude", ProviderResponse(provider="claude", text="Hi"))
        fallback = scripted_provider("openai")

        provider, response = await ProviderGateway(primary, fallback).send(HISTORY, "SYSTEM")

        assert provider is primary
        assert response.text == "Hi"
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_falls_back_once_with_identical_inputs(self, scripted_provider):
        """
        Given: Claude fails after its retries and OpenAI is configured
        When: Sending a turn
        Then: OpenAI is called exactly once with the same history and instruction
        """
        primary = scripted_provider(
            "claude", ProviderError("claude", "overloaded", retryable=True)
        )
        fallback = scripted_provider("openai", ProviderResponse(provider="openai", text="Hello"))

        provider, response = await ProviderGateway(primary, fallback).send(HISTORY, "SYSTEM")

        assert provider is fallback
        assert response.text == "Hello"
        assert len(fallback.calls) == 1
        assert fallback.calls[0]["history"] == primary.calls[0]["history"]
        assert fallback.calls[0]["instruction"] == primary.calls[0]["instruction"]

    @pytest.mark.asyncio
    async def test_no_fallback_reraises(self, scripted_provider):
        primary = scripted_provider("openai", ProviderError("openai", "quota"))

        with pytest.raises(ProviderError):
            await ProviderGateway(primary).send(HISTORY, "SYSTEM")

        assert len(primary.calls) == 1

    @pytest.mark.asyncio
    async def test_both_fail(self, scripted_provider):
        primary = scripted_provider("claude", ProviderError("claude", "down"))
        fallback = scripted_provider("openai", ProviderError("openai", "also down"))

        with pytest.raises(ProviderError) as exc_info:
            await ProviderGateway(primary, fallback).send(HISTORY, "SYSTEM")

        assert exc_info.value.provider == "openai"
        assert len(fallback.calls) == 1


class TestBuildGateway:
    @pytest.fixture(autouse=True)
    def mock_sdks(self):
        with (
            patch("src.architect.claude_client.AsyncAnthropic"),
            patch("src.architect.openai_client.AsyncOpenAI"),
        ):
            yield

    def test_claude_with_openai_fallback(self):
        gateway = build_gateway(
            ProviderSettings(
                default_provider="claude", claude_api_key="ck", openai_api_key="ok"
            )
        )

        assert isinstance(gateway.primary, ClaudeClient)
        assert isinstance(gateway.fallback, OpenAIClient)

    def test_claude_alone(self):
        gateway = build_gateway(ProviderSettings(default_provider="claude", claude_api_key="ck"))

        assert gateway.fallback is None

    def test_openai_has_no_fallback(self):
        gateway = build_gateway(
            ProviderSettings(default_provider="openai", openai_api_key="ok", claude_api_key="ck")
        )

        assert isinstance(gateway.primary, OpenAIClient)
        assert gateway.fallback is None

    def test_missing_key(self):
        with pytest.raises(ValueError):
            build_gateway(ProviderSettings(default_provider="openai"))

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown AI provider"):
            build_gateway(ProviderSettings(default_provider="gemini", openai_api_key="ok"))
