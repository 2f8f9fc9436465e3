"""
Progress API router.
"""

from fastapi import APIRouter, Query

from src.api.dependencies import RedisClientDep
from src.api.schemas import ProgressResponse
from src.architect.phases import next_pending_type

router = APIRouter()


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    redis: RedisClientDep,
    session_id: str = Query(..., min_length=1),
) -> ProgressResponse:
    """Completed document types in creation order and the next one due."""
    completed = await redis.list_completed_types(session_id)
    next_type = next_pending_type(completed)

    return ProgressResponse(
        completed_docs=[doc_type.value for doc_type in completed],
        total_completed=len(completed),
        next_document=next_type.value if next_type else None,
    )
