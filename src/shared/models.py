"""
Shared data models.

Persisted records for interview sessions, generated specification documents,
usage events and the optional upstream intro brief.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.shared.document_types import DocumentType


class UsageKind(StrEnum):
    """Kinds of usage events recorded per external identity."""

    SESSION_SAVED = "session_saved"
    SESSION_COMPLETE = "session_complete"


class ChatMessage(BaseModel):
    """One turn of the visible conversation."""

    role: str
    content: str = ""


class ArchitectSession(BaseModel):
    """An interview run owned by an external identity."""

    session_id: str
    external_id: str
    session_name: str | None = None
    session_type: str = "architect"
    is_complete: bool = False
    completion_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None


class SpecDocument(BaseModel):
    """A generated specification document. One per (session, document type)."""

    document_id: str
    session_id: str
    external_id: str
    document_type: DocumentType
    filename: str
    content: str
    description: str
    next_steps: str | None = None
    skip_technical_summary: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class UsageEvent(BaseModel):
    """A usage/analytics event for an external identity."""

    external_id: str
    kind: UsageKind
    session_id: str
    month: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class IntroBrief(BaseModel):
    """Project facts gathered by the intake flow before the architect interview."""

    what_theyre_doing: str = ""
    project_type: str = ""
    audience: str = ""
    problem: str = ""
    timeline: str = ""
    team_size: str = ""
    is_complete: bool = False

    @property
    def is_empty(self) -> bool:
        """True when none of the descriptive fields carry any text."""
        return not any(
            (
                self.what_theyre_doing,
                self.project_type,
                self.audience,
                self.problem,
                self.timeline,
                self.team_size,
            )
        )


def usage_month(moment: datetime | None = None) -> int:
    """Month bucket in YYYYMM form."""
    moment = moment or datetime.now(UTC)
    return moment.year * 100 + moment.month
