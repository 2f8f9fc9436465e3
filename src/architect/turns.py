"""
Turn request/result types and the errors a turn can end with.
"""

from dataclasses import dataclass
from typing import Any

from src.shared.models import IntroBrief

DEFAULT_EXTERNAL_ID = "standalone_user"

# Provider tag for the pre-call completion short-circuit
COMPLETE_TAG = "complete"


class InvalidTurnError(Exception):
    """The turn request is malformed. Nothing was read or called."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SessionAccessError(Exception):
    """The session exists but belongs to a different external identity."""

    def __init__(self, session_id: str, external_id: str):
        self.session_id = session_id
        self.external_id = external_id
        super().__init__(f"Session {session_id} not accessible to {external_id}")


class ProviderUnavailableError(Exception):
    """No provider is configured, so the turn cannot reach a model."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TurnFailedError(Exception):
    """Every configured provider failed for this turn."""

    def __init__(self, message: str, provider: str | None = None):
        self.message = message
        self.provider = provider
        super().__init__(message)


@dataclass
class TurnRequest:
    """One inbound chat turn."""

    messages: list[dict[str, Any]]
    session_id: str
    external_id: str = DEFAULT_EXTERNAL_ID
    tech_decisions: bool = False
    fast_mode: bool = True
    timeline: int = 1
    intro_brief: IntroBrief | None = None


@dataclass
class TurnResult:
    """What a turn returns to the chat UI."""

    text: str
    provider: str
    functions_called: int = 0
    usage: dict[str, Any] | None = None
    session_complete: bool = False
