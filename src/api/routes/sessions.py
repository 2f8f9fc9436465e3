"""
Sessions API router.

Save, list, resume and complete interview sessions. Every read or write on
a specific session is checked against the caller's external id; sessions
owned by someone else look exactly like missing ones.
"""

import structlog
from fastapi import APIRouter, Query

from src.api.dependencies import RedisClientDep
from src.api.schemas import (
    CompleteSessionRequest,
    CompleteSessionResponse,
    DocumentItem,
    ErrorResponse,
    SaveSessionRequest,
    SaveSessionResponse,
    SessionDetailResponse,
    SessionDocumentsResponse,
    SessionListResponse,
    SessionSummary,
)
from src.architect.phases import COMPLETION_MESSAGE
from src.architect.turns import SessionAccessError
from src.shared.models import ArchitectSession, UsageKind
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)

router = APIRouter()

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session not found or access denied"}}


async def _owned_session(
    redis: RedisClient, session_id: str, external_id: str
) -> ArchitectSession:
    session = await redis.get_session(session_id)
    if session is None or session.external_id != external_id:
        raise SessionAccessError(session_id, external_id)
    return session


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    redis: RedisClientDep,
    external_id: str = Query(..., min_length=1),
) -> SessionListResponse:
    """Incomplete sessions for an identity, most recently active first."""
    sessions = await redis.list_incomplete_sessions(external_id)

    summaries = []
    for session in sessions:
        completed = await redis.list_completed_types(session.session_id)
        summaries.append(
            SessionSummary(
                session_id=session.session_id,
                session_name=session.session_name,
                external_id=session.external_id,
                last_activity=session.last_activity,
                documents_generated=len(completed),
            )
        )

    return SessionListResponse(sessions=summaries)


@router.post("/sessions", response_model=SaveSessionResponse, responses=_NOT_FOUND)
async def save_session(request: SaveSessionRequest, redis: RedisClientDep) -> SaveSessionResponse:
    """Save a session's name and transcript and record a session_saved usage event."""
    existing = await redis.get_session(request.session_id)
    if existing is not None and existing.external_id != request.external_id:
        raise SessionAccessError(request.session_id, request.external_id)

    await redis.save_session(
        session_id=request.session_id,
        external_id=request.external_id,
        session_name=request.session_name,
        session_type=request.session_type,
        messages=request.messages,
    )
    await redis.record_usage_event(
        request.external_id, UsageKind.SESSION_SAVED, request.session_id
    )

    logger.info(
        "Session saved",
        session_id=request.session_id,
        external_id=request.external_id,
        session_name=request.session_name,
    )
    return SaveSessionResponse(session_id=request.session_id)


@router.get(
    "/sessions/{session_id}", response_model=SessionDetailResponse, responses=_NOT_FOUND
)
async def load_session(
    session_id: str,
    redis: RedisClientDep,
    external_id: str = Query(..., min_length=1),
) -> SessionDetailResponse:
    """Transcript and progress needed to resume a session."""
    session = await _owned_session(redis, session_id, external_id)
    messages = await redis.get_session_messages(session_id)
    completed = await redis.list_completed_types(session_id)

    return SessionDetailResponse(
        session_id=session_id,
        messages=messages,
        completed_docs=[doc_type.value for doc_type in completed],
        session_name=session.session_name,
        session_type=session.session_type,
        is_complete=session.is_complete,
        last_activity=session.last_activity,
        created_at=session.created_at,
    )


@router.post(
    "/sessions/{session_id}/complete",
    response_model=CompleteSessionResponse,
    responses=_NOT_FOUND,
)
async def complete_session(
    session_id: str,
    request: CompleteSessionRequest,
    redis: RedisClientDep,
) -> CompleteSessionResponse:
    """
    Mark a session complete.

    A session_complete usage event is recorded only when this call completes
    the session; repeated calls succeed without counting again.
    """
    await _owned_session(redis, session_id, request.external_id)

    if await redis.mark_session_complete(
        session_id, request.completion_message or COMPLETION_MESSAGE
    ):
        await redis.record_usage_event(
            request.external_id, UsageKind.SESSION_COMPLETE, session_id
        )

    return CompleteSessionResponse()


@router.get(
    "/sessions/{session_id}/documents",
    response_model=SessionDocumentsResponse,
    responses=_NOT_FOUND,
)
async def list_session_documents(
    session_id: str,
    redis: RedisClientDep,
    external_id: str = Query(..., min_length=1),
) -> SessionDocumentsResponse:
    """Generated documents in interview order, with display titles."""
    session = await _owned_session(redis, session_id, external_id)
    documents = await redis.list_documents(session_id)

    return SessionDocumentsResponse(
        session_id=session_id,
        session_name=session.session_name,
        is_complete=session.is_complete,
        completed_at=session.completed_at,
        documents=[
            DocumentItem(
                type=document.document_type.value,
                title=document.document_type.display_title,
                order=document.document_type.position,
                filename=document.filename,
                description=document.description,
                content=document.content,
                created_at=document.created_at,
            )
            for document in documents
        ],
    )
