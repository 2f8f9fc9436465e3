"""
Claude backend for the architect interview.

Wraps the Anthropic Messages API behind the LLMProvider contract. Claude is
stricter about the message list than Chat Completions: no empty turns and no
two consecutive turns from the same role. Those rules, and the transient-error
retry policy, are applied here so the orchestrator never sees them.
"""

import asyncio
from typing import Any

import structlog
from anthropic import APITimeoutError, AsyncAnthropic

from src.architect.providers import (
    CLAUDE,
    DEFAULT_CLAUDE_MAX_TOKENS,
    DEFAULT_CLAUDE_MODEL,
    TEMPERATURE,
    ProviderError,
    ProviderResponse,
    ToolInvocation,
    ToolResult,
    usage_to_dict,
)
from src.architect.tools import claude_tools

logger = structlog.get_logger(__name__)

# HTTP statuses treated as transient: overloaded, service unavailable, bad gateway
TRANSIENT_STATUS_CODES = frozenset({529, 503, 502})
TRANSIENT_MESSAGE_MARKERS = ("overloaded", "rate limit", "timeout")


def is_transient_error(error: Exception) -> bool:
    """Whether a Claude API error is worth retrying."""
    if isinstance(error, APITimeoutError):
        return True

    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    if status in TRANSIENT_STATUS_CODES:
        return True

    message = str(error).lower().replace("_", " ")
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


def _as_blocks(content: str | list[dict[str, Any]]) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return list(content)


def prepare_messages(history: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Normalize history into a list Claude accepts.

    Roles other than "assistant" become "user", text is trimmed, empty turns
    are dropped and consecutive same-role turns are merged (text joined with a
    blank line).
    """
    cleaned: list[dict[str, Any]] = []
    for message in history:
        role = "assistant" if message.get("role") == "assistant" else "user"
        content = message.get("content")
        if isinstance(content, str):
            content = content.strip()
        if not content:
            continue

        if cleaned and cleaned[-1]["role"] == role:
            previous = cleaned[-1]
            if isinstance(previous["content"], str) and isinstance(content, str):
                previous["content"] = f"{previous['content']}\n\n{content}"
            else:
                previous["content"] = _as_blocks(previous["content"]) + _as_blocks(content)
            continue

        cleaned.append({"role": role, "content": content})
    return cleaned


class ClaudeClient:
    """
    Anthropic Messages API provider.

    Handles:
    - Message list cleanup (empty turns, consecutive roles)
    - Tool declaration and tool_use extraction
    - Retry with exponential backoff for transient errors
    """

    name = CLAUDE

    # Retry configuration: 1 call plus up to 3 retries, sleeping 2s, 4s, 8s
    MAX_RETRIES = 3
    INITIAL_BACKOFF_SECONDS = 2.0
    BACKOFF_MULTIPLIER = 2.0

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_CLAUDE_MODEL,
        max_tokens: int = DEFAULT_CLAUDE_MAX_TOKENS,
    ) -> None:
        """
        Initialize the Claude client.

        Args:
            api_key: Anthropic API key.
            model: Model to use.
            max_tokens: Output token cap per call.
        """
        if not api_key:
            raise ValueError("Claude API key not set")

        self._model = model
        self._max_tokens = max_tokens
        self._client = AsyncAnthropic(api_key=api_key)

    @property
    def model(self) -> str:
        """Get the model being used."""
        return self._model

    async def invoke(
        self,
        history: list[dict[str, Any]],
        instruction: str,
        tools: bool = True,
    ) -> ProviderResponse:
        """
        Send the conversation to Claude.

        Args:
            history: Conversation turns, oldest first.
            instruction: System prompt.
            tools: Whether to declare the document-saving tool.

        Returns:
            ProviderResponse with text and any tool invocations.

        Raises:
            ProviderError: On a non-transient error, or once retries are exhausted.
        """
        request_params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": instruction,
            "messages": prepare_messages(history),
            "temperature": TEMPERATURE,
        }
        if tools:
            request_params["tools"] = claude_tools()

        backoff = self.INITIAL_BACKOFF_SECONDS

        for attempt in range(self.MAX_RETRIES + 1):
            try:
                response = await self._client.messages.create(**request_params)
                return self._parse_response(response)

            except Exception as e:
                retryable = is_transient_error(e)
                logger.warning(
                    "Claude API error",
                    provider=self.name,
                    attempt=attempt + 1,
                    retryable=retryable,
                    error=str(e),
                )

                if not retryable:
                    raise ProviderError(self.name, str(e), retryable=False) from e

                if attempt >= self.MAX_RETRIES:
                    logger.error(
                        "Claude retries exhausted",
                        provider=self.name,
                        attempts=attempt + 1,
                    )
                    raise ProviderError(self.name, str(e), retryable=True) from e

                logger.info(
                    "Retrying Claude API call",
                    provider=self.name,
                    attempt=attempt + 1,
                    max_retries=self.MAX_RETRIES,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
                backoff *= self.BACKOFF_MULTIPLIER

        raise ProviderError(self.name, "Max retries exceeded", retryable=True)

    def _parse_response(self, response: Any) -> ProviderResponse:
        """Extract text and tool_use blocks."""
        content_parts = []
        tool_invocations = []

        for block in response.content:
            if block.type == "text":
                content_parts.append(block.text)
            elif block.type == "tool_use":
                tool_invocations.append(
                    ToolInvocation(
                        id=block.id,
                        name=block.name,
                        arguments=dict(block.input or {}),
                    )
                )

        return ProviderResponse(
            provider=self.name,
            text="\n".join(content_parts),
            tool_invocations=tool_invocations,
            usage=usage_to_dict(response.usage),
        )

    def extend_with_tool_results(
        self,
        history: list[dict[str, Any]],
        response: ProviderResponse,
        results: list[ToolResult],
    ) -> list[dict[str, Any]]:
        """Append the assistant tool_use turn and a user turn of tool_result blocks."""
        assistant_blocks: list[dict[str, Any]] = []
        if response.text.strip():
            assistant_blocks.append({"type": "text", "text": response.text})
        for invocation in response.tool_invocations:
            assistant_blocks.append(
                {
                    "type": "tool_use",
                    "id": invocation.id,
                    "name": invocation.name,
                    "input": invocation.arguments,
                }
            )

        return [
            *history,
            {"role": "assistant", "content": assistant_blocks},
            {
                "role": "user",
                "content": [self.build_tool_result_block(result) for result in results],
            },
        ]

    def build_tool_result_block(self, result: ToolResult) -> dict[str, Any]:
        """Build a tool_result content block."""
        return {
            "type": "tool_result",
            "tool_use_id": result.invocation_id,
            "content": result.content,
            "is_error": result.is_error,
        }
