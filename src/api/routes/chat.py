"""
Chat API router.

One POST per user turn. Progress, budgets and completion are re-derived
from the store inside the orchestrator, so this handler only maps the
request onto a TurnRequest and the TurnResult back onto the response.
"""

import structlog
from fastapi import APIRouter

from src.api.dependencies import OrchestratorDep, RedisClientDep
from src.api.schemas import ChatRequest, ChatResponse, ErrorResponse
from src.architect.turns import TurnRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed turn"},
        404: {"model": ErrorResponse, "description": "Session not found or access denied"},
        500: {"model": ErrorResponse, "description": "Could not process the request"},
        503: {"model": ErrorResponse, "description": "No AI provider configured"},
    },
)
async def chat(
    request: ChatRequest,
    redis: RedisClientDep,
    orchestrator: OrchestratorDep,
) -> ChatResponse:
    """
    Process one interview turn.

    When the request carries no intro brief, the brief stored for the
    session (if any) is used.
    """
    intro_brief = request.intro_brief.to_model() if request.intro_brief else None
    if intro_brief is None:
        intro_brief = await redis.get_intro_brief(request.session_id)

    result = await orchestrator.handle_turn(
        TurnRequest(
            messages=[message.model_dump() for message in request.messages],
            session_id=request.session_id,
            external_id=request.external_id,
            tech_decisions=request.tech_decisions,
            fast_mode=request.fast_mode,
            timeline=request.timeline,
            intro_brief=intro_brief,
        )
    )

    return ChatResponse(
        text=result.text,
        provider=result.provider,
        functions_called=result.functions_called,
        usage=result.usage,
        session_complete=result.session_complete,
    )
