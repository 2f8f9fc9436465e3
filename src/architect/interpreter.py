"""
Tool-call interpreter and phase advancement.

A provider response either asks the user something (plain text) or invokes
save_specification_document one or more times. Saves are persisted, their
results are fed back to the same provider with a freshly composed
instruction, and the follow-up text becomes the turn's answer. Raw tool
arguments never reach the user. When the follow-up is empty or fails, the
next phase's lead question is served so the conversation never stalls.
"""

import json
from typing import Any

import structlog
from pydantic import ValidationError

from src.architect.completion import CompletionFinalizer
from src.architect.phases import (
    PhaseState,
    QuestionBudget,
    lead_question,
    load_phase_state,
    looks_like_question,
    next_pending_type,
)
from src.architect.prompts import build_contextual_prompt
from src.architect.providers import (
    LLMProvider,
    ProviderError,
    ProviderResponse,
    ToolInvocation,
    ToolResult,
)
from src.architect.tools import SAVE_DOCUMENT_TOOL, SaveDocumentArgs
from src.architect.turns import TurnRequest, TurnResult
from src.shared.redis_client import DuplicateDocumentError, RedisClient

logger = structlog.get_logger(__name__)


def _error_result(invocation: ToolInvocation, error: str) -> ToolResult:
    return ToolResult(
        invocation_id=invocation.id,
        content=json.dumps({"success": False, "error": error}),
        is_error=True,
    )


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "Invalid arguments: " + "; ".join(problems)


class ToolCallInterpreter:
    """Turns a provider response into the turn's result."""

    def __init__(self, store: RedisClient, finalizer: CompletionFinalizer) -> None:
        self._store = store
        self._finalizer = finalizer
        self._budget = QuestionBudget(store)

    async def interpret(
        self,
        provider: LLMProvider,
        response: ProviderResponse,
        history: list[dict[str, Any]],
        request: TurnRequest,
        phase_state: PhaseState,
    ) -> TurnResult:
        """
        Branch on whether the model invoked any tool.

        Args:
            provider: The backend that produced the response; the follow-up
                goes to the same backend.
            response: First response of the turn.
            history: Conversation sent with that call.
            request: The inbound turn.
            phase_state: Progress read before the call.

        Raises:
            StorageError: If persisting a document or counter fails.
        """
        if response.has_tool_calls:
            return await self._handle_tool_calls(provider, response, history, request)
        return await self._handle_plain_reply(provider, response, request, phase_state)

    async def _handle_plain_reply(
        self,
        provider: LLMProvider,
        response: ProviderResponse,
        request: TurnRequest,
        phase_state: PhaseState,
    ) -> TurnResult:
        text = response.text
        if looks_like_question(text) and phase_state.next_type is not None:
            await self._budget.increment(request.session_id, phase_state.next_type)

        return TurnResult(text=text, provider=provider.name, usage=response.usage)

    async def _handle_tool_calls(
        self,
        provider: LLMProvider,
        response: ProviderResponse,
        history: list[dict[str, Any]],
        request: TurnRequest,
    ) -> TurnResult:
        results = []
        functions_called = 0
        for invocation in response.tool_invocations:
            results.append(await self._execute(invocation, request))
            if invocation.name == SAVE_DOCUMENT_TOOL:
                functions_called += 1

        # Progress is re-read so the follow-up instruction names the new next type.
        phase_state = await load_phase_state(self._store, request.session_id, request.fast_mode)
        if phase_state.is_complete:
            text = await self._finalizer.finalize(request.session_id, request.external_id)
            return TurnResult(
                text=text,
                provider=f"{provider.name}-complete",
                functions_called=functions_called,
                usage=response.usage,
                session_complete=True,
            )

        instruction = build_contextual_prompt(
            phase_state,
            tech_decisions=request.tech_decisions,
            fast_mode=request.fast_mode,
            timeline=request.timeline,
            intro_brief=request.intro_brief,
        )
        extended_history = provider.extend_with_tool_results(history, response, results)

        try:
            follow_up = await provider.invoke(extended_history, instruction)
        except ProviderError as e:
            logger.warning(
                "Follow-up after tool call failed",
                session_id=request.session_id,
                provider=provider.name,
                error=e.message,
            )
            return await self.resolve_next_phase(
                provider.name, request, functions_called, usage=None, follow_up_failed=True
            )

        if follow_up.has_tool_calls:
            logger.warning(
                "Ignoring tool calls in follow-up response",
                session_id=request.session_id,
                provider=provider.name,
                tool_calls=len(follow_up.tool_invocations),
            )

        if not follow_up.text.strip():
            return await self.resolve_next_phase(
                provider.name, request, functions_called, usage=follow_up.usage
            )

        return TurnResult(
            text=follow_up.text,
            provider=provider.name,
            functions_called=functions_called,
            usage=follow_up.usage,
        )

    async def _execute(self, invocation: ToolInvocation, request: TurnRequest) -> ToolResult:
        """Run one tool invocation. Every invocation gets a result, errors included."""
        if invocation.name != SAVE_DOCUMENT_TOOL:
            logger.warning(
                "Ignoring unknown tool",
                session_id=request.session_id,
                tool_name=invocation.name,
            )
            return _error_result(invocation, f"Unknown tool: {invocation.name}")

        if invocation.parse_error:
            return _error_result(invocation, invocation.parse_error)

        try:
            args = SaveDocumentArgs.model_validate(invocation.arguments)
        except ValidationError as e:
            logger.warning(
                "Rejected save_specification_document arguments",
                session_id=request.session_id,
                error_count=e.error_count(),
            )
            return _error_result(invocation, _format_validation_error(e))

        try:
            document = await self._store.create_document(
                session_id=request.session_id,
                external_id=request.external_id,
                document_type=args.document_type,
                filename=args.filename,
                content=args.content,
                description=args.description,
                next_steps=args.next_steps,
                skip_technical_summary=args.skip_technical_summary,
            )
        except DuplicateDocumentError as e:
            return _error_result(invocation, f"Document {e.document_type} already exists")

        return ToolResult(
            invocation_id=invocation.id,
            content=json.dumps(
                {
                    "success": True,
                    "message": f"Specification document {document.filename} saved successfully",
                    "document_type": document.document_type.value,
                    "document_id": document.document_id,
                    "filename": document.filename,
                }
            ),
        )

    async def resolve_next_phase(
        self,
        provider_name: str,
        request: TurnRequest,
        functions_called: int,
        usage: dict[str, Any] | None = None,
        follow_up_failed: bool = False,
    ) -> TurnResult:
        """
        Serve the next phase's lead question, or the completion message.

        Completed types are re-read from the store, so saves made earlier in
        this turn are taken into account.
        """
        tag = f"{provider_name}-fallback" if follow_up_failed else provider_name
        completed = await self._store.list_completed_types(request.session_id)
        next_type = next_pending_type(completed)

        if next_type is None:
            text = await self._finalizer.finalize(request.session_id, request.external_id)
            return TurnResult(
                text=text,
                provider=f"{tag}-complete",
                functions_called=functions_called,
                usage=usage,
                session_complete=True,
            )

        logger.info(
            "Serving lead question",
            session_id=request.session_id,
            document_type=next_type,
            provider=tag,
        )
        return TurnResult(
            text=lead_question(next_type),
            provider=tag,
            functions_called=functions_called,
            usage=usage,
        )
