"""
OpenAI backend for the architect interview.

Thin wrapper around the Chat Completions API: the instruction goes first as a
system message, the document-saving tool is declared in function format and
tool calls come back as ``message.tool_calls``.
"""

import json
from typing import Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from src.architect.providers import (
    DEFAULT_OPENAI_MODEL,
    OPENAI,
    TEMPERATURE,
    ProviderError,
    ProviderResponse,
    ToolInvocation,
    ToolResult,
    usage_to_dict,
)
from src.architect.tools import openai_tools

logger = structlog.get_logger(__name__)


def _to_openai_message(message: dict[str, Any]) -> dict[str, Any]:
    """Pass tool plumbing through untouched; coerce plain turns to user/assistant."""
    if message.get("role") == "tool" or message.get("tool_calls"):
        return dict(message)
    role = "assistant" if message.get("role") == "assistant" else "user"
    return {"role": role, "content": message.get("content") or ""}


class OpenAIClient:
    """Chat Completions provider. No local retry; failures surface immediately."""

    name = OPENAI

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI API key not set")

        self._model = model
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    @property
    def model(self) -> str:
        return self._model

    async def invoke(
        self,
        history: list[dict[str, Any]],
        instruction: str,
        tools: bool = True,
    ) -> ProviderResponse:
        """
        Send the conversation to OpenAI.

        Args:
            history: Conversation turns, oldest first.
            instruction: System prompt, sent as the leading system message.
            tools: Whether to declare the document-saving tool.

        Raises:
            ProviderError: If the API call fails or returns no choices.
        """
        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": instruction},
                *(_to_openai_message(m) for m in history),
            ],
            "temperature": TEMPERATURE,
        }
        if tools:
            request_params["tools"] = openai_tools()
            request_params["tool_choice"] = "auto"

        try:
            completion = await self._client.chat.completions.create(**request_params)
        except OpenAIError as e:
            logger.error("OpenAI API error", provider=self.name, error=str(e))
            raise ProviderError(self.name, str(e)) from e

        if not completion.choices:
            raise ProviderError(self.name, "Empty response from OpenAI API")

        return self._parse_message(completion.choices[0].message, completion.usage)

    def _parse_message(self, message: Any, usage: Any) -> ProviderResponse:
        tool_invocations = []
        for tool_call in message.tool_calls or []:
            raw_arguments = tool_call.function.arguments or ""
            arguments: dict[str, Any] = {}
            parse_error = None
            try:
                parsed = json.loads(raw_arguments) if raw_arguments else {}
                if isinstance(parsed, dict):
                    arguments = parsed
                else:
                    parse_error = "Tool arguments must be a JSON object"
            except json.JSONDecodeError as e:
                parse_error = f"Invalid JSON arguments: {e}"
                logger.warning(
                    "Unparseable tool arguments",
                    provider=self.name,
                    tool_call_id=tool_call.id,
                )

            tool_invocations.append(
                ToolInvocation(
                    id=tool_call.id,
                    name=tool_call.function.name,
                    arguments=arguments,
                    raw_arguments=raw_arguments,
                    parse_error=parse_error,
                )
            )

        return ProviderResponse(
            provider=self.name,
            text=message.content or "",
            tool_invocations=tool_invocations,
            usage=usage_to_dict(usage),
        )

    def extend_with_tool_results(
        self,
        history: list[dict[str, Any]],
        response: ProviderResponse,
        results: list[ToolResult],
    ) -> list[dict[str, Any]]:
        """Append the assistant tool_calls message followed by one tool message per result."""
        assistant_message = {
            "role": "assistant",
            "content": response.text or None,
            "tool_calls": [
                {
                    "id": invocation.id,
                    "type": "function",
                    "function": {
                        "name": invocation.name,
                        "arguments": invocation.raw_arguments
                        if invocation.raw_arguments is not None
                        else json.dumps(invocation.arguments),
                    },
                }
                for invocation in response.tool_invocations
            ],
        }
        tool_messages = [
            {
                "role": "tool",
                "tool_call_id": result.invocation_id,
                "content": result.content,
            }
            for result in results
        ]
        return [*history, assistant_message, *tool_messages]
