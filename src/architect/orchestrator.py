"""
Turn orchestration for the architecture interview.

A turn is stateless: progress, question counts and completion are re-read
from the store every time, the instruction is composed from that state,
the gateway gets one call (plus at most one fallback call) and the
interpreter decides what the user sees.
"""

from collections.abc import Callable
from typing import Any

import structlog

from src.architect.completion import CompletionFinalizer
from src.architect.gateway import ProviderGateway
from src.architect.interpreter import ToolCallInterpreter
from src.architect.phases import load_phase_state
from src.architect.prompts import build_contextual_prompt
from src.architect.providers import ProviderError
from src.architect.turns import (
    COMPLETE_TAG,
    InvalidTurnError,
    SessionAccessError,
    TurnFailedError,
    TurnRequest,
    TurnResult,
)
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)


def _validate(request: TurnRequest) -> None:
    if not isinstance(request.messages, list):
        raise InvalidTurnError("messages array required")
    if not isinstance(request.session_id, str) or not request.session_id.strip():
        raise InvalidTurnError("session_id required")


def _history(messages: list[Any]) -> list[dict[str, Any]]:
    """Plain {role, content} dicts, whatever the caller passed in."""
    history = []
    for message in messages:
        if hasattr(message, "model_dump"):
            message = message.model_dump()
        history.append(
            {"role": message.get("role", "user"), "content": message.get("content") or ""}
        )
    return history


class ArchitectOrchestrator:
    """
    Entry point for one chat turn.

    Flow:
    1. Validate the request
    2. Create the session on first use and check ownership
    3. Short-circuit with the completion message when all documents exist
    4. Compose the instruction from stored progress
    5. Call the gateway (primary, then fallback)
    6. Hand the response to the tool-call interpreter

    The gateway may be passed as a zero-argument factory. It is then built
    only when a turn actually needs a provider, so finished sessions are
    served without one.
    """

    def __init__(
        self,
        store: RedisClient,
        gateway: ProviderGateway | Callable[[], ProviderGateway],
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._finalizer = CompletionFinalizer(store)
        self._interpreter = ToolCallInterpreter(store, self._finalizer)

    def _resolve_gateway(self) -> ProviderGateway:
        if not isinstance(self._gateway, ProviderGateway):
            self._gateway = self._gateway()
        return self._gateway

    async def handle_turn(self, request: TurnRequest) -> TurnResult:
        """
        Process one turn.

        Raises:
            InvalidTurnError: If messages or session_id are missing.
            SessionAccessError: If the session belongs to another identity.
            ProviderUnavailableError: If the turn needs a provider and none is configured.
            TurnFailedError: If every provider failed.
            StorageError: If the store is unavailable.
        """
        _validate(request)

        with structlog.contextvars.bound_contextvars(session_id=request.session_id):
            session = await self._store.ensure_session(request.session_id, request.external_id)
            if session.external_id != request.external_id:
                logger.warning(
                    "Session ownership mismatch",
                    external_id=request.external_id,
                )
                raise SessionAccessError(request.session_id, request.external_id)

            phase_state = await load_phase_state(
                self._store, request.session_id, request.fast_mode
            )
            if phase_state.is_complete:
                text = await self._finalizer.finalize(request.session_id, request.external_id)
                return TurnResult(text=text, provider=COMPLETE_TAG, session_complete=True)

            gateway = self._resolve_gateway()

            instruction = build_contextual_prompt(
                phase_state,
                tech_decisions=request.tech_decisions,
                fast_mode=request.fast_mode,
                timeline=request.timeline,
                intro_brief=request.intro_brief,
            )
            history = _history(request.messages)

            logger.info(
                "Processing turn",
                next_document=phase_state.next_type,
                completed=phase_state.total_completed,
                question_count=phase_state.question_count,
                question_limit=phase_state.question_limit,
                messages=len(history),
            )

            try:
                provider, response = await gateway.send(history, instruction)
            except ProviderError as e:
                logger.error("Turn failed", provider=e.provider, error=e.message)
                raise TurnFailedError("Could not process your request", e.provider) from e

            result = await self._interpreter.interpret(
                provider, response, history, request, phase_state
            )

            logger.info(
                "Turn complete",
                provider=result.provider,
                functions_called=result.functions_called,
                session_complete=result.session_complete,
            )
            return result
