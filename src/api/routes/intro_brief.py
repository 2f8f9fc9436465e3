"""
Intro brief API router.

The intake flow stores what it learned about the project here; the chat
endpoint picks it up when a turn arrives without a brief of its own.
"""

import structlog
from fastapi import APIRouter, Query

from src.api.dependencies import RedisClientDep
from src.api.schemas import IntroBriefResponse, StoreIntroBriefRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/intro-brief", response_model=IntroBriefResponse)
async def store_intro_brief(
    request: StoreIntroBriefRequest, redis: RedisClientDep
) -> IntroBriefResponse:
    """Store or replace the brief for a session."""
    brief = request.to_model()
    await redis.store_intro_brief(request.session_id, brief)

    logger.info(
        "Intro brief stored",
        session_id=request.session_id,
        external_id=request.external_id,
        is_complete=brief.is_complete,
    )
    return IntroBriefResponse(session_id=request.session_id, intro_brief=brief)


@router.get("/intro-brief", response_model=IntroBriefResponse)
async def get_intro_brief(
    redis: RedisClientDep,
    session_id: str = Query(..., min_length=1),
) -> IntroBriefResponse:
    """The stored brief for a session; intro_brief is null when none exists."""
    brief = await redis.get_intro_brief(session_id)
    return IntroBriefResponse(session_id=session_id, intro_brief=brief)
