"""
Usage API router.
"""

from fastapi import APIRouter, Query

from src.api.dependencies import RedisClientDep
from src.api.schemas import UsageResponse
from src.shared.models import UsageKind, usage_month

router = APIRouter()


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    redis: RedisClientDep,
    external_id: str = Query(..., min_length=1),
) -> UsageResponse:
    """This month's saved and completed session counts for an identity."""
    month = usage_month()
    events = await redis.list_usage_events(external_id, month)

    saved = sum(1 for event in events if event.kind == UsageKind.SESSION_SAVED)
    completed = sum(1 for event in events if event.kind == UsageKind.SESSION_COMPLETE)

    return UsageResponse(
        external_id=external_id,
        month=month,
        total_usage=saved + completed,
        sessions_saved=saved,
        sessions_completed=completed,
    )
