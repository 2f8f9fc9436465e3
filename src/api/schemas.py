"""
Pydantic schemas for API requests and responses.

Field names are snake_case on the wire. The widget sends camelCase, so
request models also accept camelCase aliases.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.shared.document_types import TOTAL_DOCUMENTS
from src.shared.models import ChatMessage, IntroBrief


class WidgetRequest(BaseModel):
    """Base for request bodies: snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IntroBriefPayload(WidgetRequest):
    """Project facts gathered by the intake flow."""

    what_theyre_doing: str = ""
    project_type: str = ""
    audience: str = ""
    problem: str = ""
    timeline: str = ""
    team_size: str = ""
    is_complete: bool = False

    def to_model(self) -> IntroBrief:
        return IntroBrief(**self.model_dump())


class ChatRequest(WidgetRequest):
    """Request body for POST /api/v1/chat."""

    messages: list[ChatMessage] = Field(..., description="Conversation so far, oldest first")
    session_id: str = Field(..., min_length=1, description="Interview session identifier")
    external_id: str = Field(
        default="standalone_user", description="Identity supplied by the parent application"
    )
    tech_decisions: bool = Field(
        default=False, description="Let the assistant choose the technical stack"
    )
    fast_mode: bool = Field(default=True, description="Use reduced per-phase question budgets")
    timeline: int = Field(default=1, description="Timeline ordinal, clamped to 1-10")
    intro_brief: IntroBriefPayload | None = Field(
        default=None, description="Intake facts; the stored brief is used when omitted"
    )


class ChatResponse(BaseModel):
    """Response for POST /api/v1/chat."""

    text: str
    provider: str = Field(..., description="Backend that answered, with fallback/complete suffixes")
    functions_called: int = Field(default=0, description="Document saves performed this turn")
    usage: dict[str, Any] | None = None
    session_complete: bool = False


class ProgressResponse(BaseModel):
    """Response for GET /api/v1/progress."""

    completed_docs: list[str]
    total_completed: int
    total_required: int = TOTAL_DOCUMENTS
    next_document: str | None = None


class SessionSummary(BaseModel):
    """An incomplete session in the resume list."""

    session_id: str
    session_name: str | None = None
    external_id: str
    last_activity: datetime
    documents_generated: int
    total_documents: int = TOTAL_DOCUMENTS


class SessionListResponse(BaseModel):
    """Response for GET /api/v1/sessions."""

    sessions: list[SessionSummary]


class SaveSessionRequest(WidgetRequest):
    """Request body for POST /api/v1/sessions."""

    session_id: str = Field(..., min_length=1)
    external_id: str = Field(..., min_length=1)
    session_name: str | None = None
    session_type: str = "architect"
    messages: list[ChatMessage] | None = Field(
        default=None, description="Transcript to store; omitted leaves the stored one as is"
    )


class SaveSessionResponse(BaseModel):
    """Response for POST /api/v1/sessions."""

    success: bool = True
    session_id: str


class SessionDetailResponse(BaseModel):
    """Response for GET /api/v1/sessions/{session_id}."""

    session_id: str
    messages: list[ChatMessage]
    completed_docs: list[str]
    session_name: str | None = None
    session_type: str
    is_complete: bool
    last_activity: datetime
    created_at: datetime


class CompleteSessionRequest(WidgetRequest):
    """Request body for POST /api/v1/sessions/{session_id}/complete."""

    external_id: str = Field(..., min_length=1)
    completion_message: str | None = None


class CompleteSessionResponse(BaseModel):
    """Response for POST /api/v1/sessions/{session_id}/complete."""

    success: bool = True
    message: str = "Session marked as complete"


class DocumentItem(BaseModel):
    """One generated document, as listed for the document viewer."""

    type: str
    title: str
    order: int
    filename: str
    description: str
    content: str
    created_at: datetime


class SessionDocumentsResponse(BaseModel):
    """Response for GET /api/v1/sessions/{session_id}/documents."""

    session_id: str
    session_name: str | None = None
    is_complete: bool
    completed_at: datetime | None = None
    documents: list[DocumentItem]


class UsageResponse(BaseModel):
    """Response for GET /api/v1/usage."""

    external_id: str
    month: int
    total_usage: int
    sessions_saved: int
    sessions_completed: int


class StoreIntroBriefRequest(IntroBriefPayload):
    """Request body for POST /api/v1/intro-brief."""

    session_id: str = Field(..., min_length=1)
    external_id: str = Field(..., min_length=1)

    def to_model(self) -> IntroBrief:
        return IntroBrief(**self.model_dump(exclude={"session_id", "external_id"}))


class IntroBriefResponse(BaseModel):
    """Response for the intro brief endpoints."""

    session_id: str
    intro_brief: IntroBrief | None = None


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    All API errors follow this structure.
    """

    error: ErrorDetail
