"""
Provider gateway: one primary backend plus an optional one-shot fallback.

Backend-local retries (Claude) happen inside the provider. The gateway only
decides whether a failed turn gets a second chance on the other backend.
"""

from typing import Any

import structlog

from src.architect.claude_client import ClaudeClient
from src.architect.openai_client import OpenAIClient
from src.architect.providers import (
    CLAUDE,
    OPENAI,
    LLMProvider,
    ProviderError,
    ProviderResponse,
    ProviderSettings,
)

logger = structlog.get_logger(__name__)


class ProviderGateway:
    """Sends a turn to the primary provider, falling back once on failure."""

    def __init__(self, primary: LLMProvider, fallback: LLMProvider | None = None) -> None:
        self._primary = primary
        self._fallback = fallback

    @property
    def primary(self) -> LLMProvider:
        return self._primary

    @property
    def fallback(self) -> LLMProvider | None:
        return self._fallback

    async def send(
        self, history: list[dict[str, Any]], instruction: str
    ) -> tuple[LLMProvider, ProviderResponse]:
        """
        Invoke the primary provider, then the fallback with identical inputs.

        Returns:
            The provider that answered and its response.

        Raises:
            ProviderError: If the primary fails with no fallback configured,
                or the fallback fails too.
        """
        try:
            response = await self._primary.invoke(history, instruction)
            return self._primary, response
        except ProviderError as e:
            logger.error(
                "Primary provider failed",
                provider=self._primary.name,
                attempt=1,
                retryable=e.retryable,
                error=e.message,
            )
            if self._fallback is None:
                raise

        logger.info(
            "Falling back to secondary provider",
            provider=self._fallback.name,
            failed_provider=self._primary.name,
        )
        try:
            response = await self._fallback.invoke(history, instruction)
        except ProviderError as e:
            logger.error(
                "Fallback provider failed",
                provider=self._fallback.name,
                attempt=2,
                error=e.message,
            )
            raise
        return self._fallback, response


def build_gateway(settings: ProviderSettings) -> ProviderGateway:
    """
    Construct the gateway described by settings.

    OpenAI as default runs alone. Claude as default gets an OpenAI fallback
    whenever an OpenAI key is configured.

    Raises:
        ValueError: If the default provider is unknown or has no API key.
    """
    if settings.default_provider == CLAUDE:
        primary: LLMProvider = ClaudeClient(
            api_key=settings.claude_api_key,
            model=settings.claude_model,
            max_tokens=settings.claude_max_tokens,
        )
        fallback: LLMProvider | None = None
        if settings.has_openai:
            fallback = OpenAIClient(
                api_key=settings.openai_api_key, model=settings.openai_model
            )
        return ProviderGateway(primary, fallback)

    if settings.default_provider == OPENAI:
        return ProviderGateway(
            OpenAIClient(api_key=settings.openai_api_key, model=settings.openai_model)
        )

    raise ValueError(f"Unknown AI provider: {settings.default_provider!r}")
