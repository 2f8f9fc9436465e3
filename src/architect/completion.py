"""
Completion finalizer.

Once all thirteen document types exist for a session no provider is called
again; the session is flagged complete and the fixed completion message is
served instead.
"""

import structlog

from src.architect.phases import COMPLETION_MESSAGE
from src.shared.models import UsageKind
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class CompletionFinalizer:
    """Marks finished sessions complete and records the completion usage event."""

    def __init__(self, store: RedisClient) -> None:
        self._store = store

    async def finalize(self, session_id: str, external_id: str) -> str:
        """
        Mark the session complete and return the completion message.

        The usage event is recorded once, by whichever call moves the session
        into the complete state. Later turns on a finished session only
        re-serve the message.
        """
        if await self._store.mark_session_complete(session_id, COMPLETION_MESSAGE):
            await self._store.record_usage_event(
                external_id, UsageKind.SESSION_COMPLETE, session_id
            )
            logger.info("Session finalized", session_id=session_id, external_id=external_id)

        return COMPLETION_MESSAGE
