"""
LLM provider contract shared by the OpenAI and Claude backends.

Both backends accept the same conversation history (a list of
``{"role", "content"}`` dicts) plus a system instruction, declare the same
document-saving tool, and return a ProviderResponse. Backend quirks such as
message merging and retry policy stay inside each implementation.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Protocol

OPENAI = "openai"
CLAUDE = "claude"

DEFAULT_OPENAI_MODEL = "gpt-5"
DEFAULT_CLAUDE_MODEL = "claude-opus-4-1-20250805"
DEFAULT_CLAUDE_MAX_TOKENS = 4096

# Generative drafting, not extraction.
TEMPERATURE = 1.0


class ProviderError(Exception):
    """A provider call failed (after any backend-local retries)."""

    def __init__(self, provider: str, message: str, retryable: bool = False):
        self.provider = provider
        self.message = message
        self.retryable = retryable
        super().__init__(f"{provider}: {message}")


@dataclass
class ToolInvocation:
    """A structured tool call emitted by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    raw_arguments: str | None = None
    parse_error: str | None = None


@dataclass
class ToolResult:
    """Result fed back to the model for one ToolInvocation."""

    invocation_id: str
    content: str
    is_error: bool = False


@dataclass
class ProviderResponse:
    """Normalized provider response."""

    provider: str
    text: str = ""
    tool_invocations: list[ToolInvocation] = field(default_factory=list)
    usage: dict[str, Any] | None = None

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return len(self.tool_invocations) > 0


class LLMProvider(Protocol):
    """Capability every backend implements."""

    name: str

    async def invoke(
        self,
        history: list[dict[str, Any]],
        instruction: str,
        tools: bool = True,
    ) -> ProviderResponse:
        """Send history with a system instruction and optional tool declaration."""
        ...

    def extend_with_tool_results(
        self,
        history: list[dict[str, Any]],
        response: ProviderResponse,
        results: list[ToolResult],
    ) -> list[dict[str, Any]]:
        """Append the assistant's tool invocation and the results in native shape."""
        ...


@dataclass
class ProviderSettings:
    """API keys and model names for both backends."""

    default_provider: str = OPENAI
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    claude_api_key: str | None = None
    claude_model: str = DEFAULT_CLAUDE_MODEL
    claude_max_tokens: int = DEFAULT_CLAUDE_MAX_TOKENS

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Build settings from environment variables."""
        return cls(
            default_provider=os.getenv("AI_PROVIDER", OPENAI).strip().lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            claude_api_key=os.getenv("CLAUDE_KEY") or os.getenv("ANTHROPIC_API_KEY") or None,
            claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
            claude_max_tokens=int(
                os.getenv("CLAUDE_MAX_TOKENS", str(DEFAULT_CLAUDE_MAX_TOKENS))
            ),
        )

    @property
    def has_openai(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_claude(self) -> bool:
        return bool(self.claude_api_key)


def usage_to_dict(usage: Any) -> dict[str, Any] | None:
    """Flatten an SDK usage object into plain token counts."""
    if usage is None:
        return None

    input_tokens = getattr(usage, "input_tokens", None)
    if input_tokens is None:
        input_tokens = getattr(usage, "prompt_tokens", 0)
    output_tokens = getattr(usage, "output_tokens", None)
    if output_tokens is None:
        output_tokens = getattr(usage, "completion_tokens", 0)

    input_tokens = int(input_tokens or 0)
    output_tokens = int(output_tokens or 0)
    return {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
    }
