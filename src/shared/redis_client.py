"""
Async Redis client wrapper for interview state.

Everything the orchestrator knows about a session between turns lives here:
session records, generated documents, per-phase question counters, usage
events and intro briefs. Nothing is cached in process, so every turn re-reads
its state and concurrent turns for one session see the same data.
"""

import contextlib
import json
import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime

import redis.asyncio as redis
import structlog
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError, WatchError
from ulid import ULID

from src.shared.document_types import DOCUMENT_SEQUENCE, DocumentType
from src.shared.models import (
    ArchitectSession,
    ChatMessage,
    IntroBrief,
    SpecDocument,
    UsageEvent,
    UsageKind,
    usage_month,
)

logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """A store operation failed."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.message = message
        self.operation = operation
        super().__init__(message)


class DuplicateDocumentError(StorageError):
    """A document of this type already exists for the session."""

    def __init__(self, session_id: str, document_type: DocumentType) -> None:
        self.session_id = session_id
        self.document_type = document_type
        super().__init__(
            f"Document {document_type} already exists for session {session_id}",
            operation="create_document",
        )


@contextlib.contextmanager
def _storage_errors(operation: str, **context: object) -> Iterator[None]:
    """Translate redis failures into StorageError with a log line."""
    try:
        yield
    except RedisError as e:
        logger.error("Redis operation failed", operation=operation, error=str(e), **context)
        raise StorageError(str(e), operation=operation) from e


class RedisClient:
    """
    Async Redis client for architect sessions.

    Provides typed methods for the data the interview engine depends on.
    Document uniqueness per (session, type) is enforced with HSETNX so that
    two concurrent saves of the same type cannot both succeed.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL. Defaults to REDIS_URL env var.
        """
        self._redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis with pooling."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                max_connections=10,
            )
            logger.info("Redis client connected", url=self._redis_url)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis client closed")

    async def _ensure_connected(self) -> redis.Redis:
        """Ensure client is connected, reconnecting if necessary."""
        if self._client is None:
            await self.connect()
        assert self._client is not None
        return self._client

    def _session_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    def _messages_key(self, session_id: str) -> str:
        return f"session_messages:{session_id}"

    def _owner_index_key(self, external_id: str) -> str:
        return f"sessions_by_owner:{external_id}"

    def _documents_key(self, session_id: str) -> str:
        return f"session_documents:{session_id}"

    def _question_counts_key(self, session_id: str) -> str:
        return f"question_counts:{session_id}"

    def _usage_key(self, external_id: str, month: int) -> str:
        return f"usage:{external_id}:{month}"

    def _intro_brief_key(self, session_id: str) -> str:
        return f"intro_brief:{session_id}"

    # =========================================================================
    # Sessions
    # =========================================================================

    async def get_session(self, session_id: str) -> ArchitectSession | None:
        """Retrieve a session record, or None if it has never been created."""
        client = await self._ensure_connected()

        with _storage_errors("get_session", session_id=session_id):
            data = await client.get(self._session_key(session_id))
        if data is None:
            return None

        return ArchitectSession.model_validate_json(data)

    async def ensure_session(self, session_id: str, external_id: str) -> ArchitectSession:
        """
        Return the session record, creating it on first use.

        Creation uses SET NX, so concurrent first turns end up with one record.
        """
        client = await self._ensure_connected()

        session = ArchitectSession(session_id=session_id, external_id=external_id)
        with _storage_errors("ensure_session", session_id=session_id):
            created = await client.set(
                self._session_key(session_id), session.model_dump_json(), nx=True
            )
            if created:
                await client.zadd(
                    self._owner_index_key(external_id),
                    {session_id: session.last_activity.timestamp()},
                )
                logger.info("Session created", session_id=session_id, external_id=external_id)
                return session

        existing = await self.get_session(session_id)
        assert existing is not None
        return existing

    async def save_session(
        self,
        session_id: str,
        external_id: str,
        session_name: str | None = None,
        session_type: str = "architect",
        messages: list[ChatMessage] | None = None,
    ) -> ArchitectSession:
        """
        Upsert a session's name, type and transcript and bump its last activity.

        Args:
            session_id: The session to save.
            external_id: Owning external identity (used only on creation).
            session_name: Display name chosen by the user.
            session_type: Flow the session belongs to.
            messages: Visible transcript to persist, if any.

        Returns:
            The stored session record.
        """

        def apply(current: ArchitectSession | None) -> ArchitectSession:
            session = current or ArchitectSession(session_id=session_id, external_id=external_id)
            if session_name is not None:
                session.session_name = session_name
            session.session_type = session_type
            session.last_activity = datetime.now(UTC)
            return session

        def queue_related(pipe: Pipeline, session: ArchitectSession) -> None:
            pipe.zadd(
                self._owner_index_key(session.external_id),
                {session_id: session.last_activity.timestamp()},
            )
            if messages is not None:
                pipe.set(
                    self._messages_key(session_id),
                    json.dumps([m.model_dump() for m in messages]),
                )

        session = await self._update_session(session_id, "save_session", apply, queue_related)
        assert session is not None

        logger.debug("Session saved", session_id=session_id, session_name=session_name)
        return session

    async def get_session_messages(self, session_id: str) -> list[ChatMessage]:
        """Saved transcript for a session, oldest first."""
        client = await self._ensure_connected()

        with _storage_errors("get_session_messages", session_id=session_id):
            data = await client.get(self._messages_key(session_id))
        if not data:
            return []
        return [ChatMessage.model_validate(m) for m in json.loads(data)]

    async def list_incomplete_sessions(self, external_id: str) -> list[ArchitectSession]:
        """Sessions owned by external_id that are not complete, most recent first."""
        client = await self._ensure_connected()

        with _storage_errors("list_incomplete_sessions", external_id=external_id):
            session_ids = await client.zrevrange(self._owner_index_key(external_id), 0, -1)

        sessions = []
        for session_id in session_ids:
            session = await self.get_session(session_id)
            if session is not None and not session.is_complete:
                sessions.append(session)
        return sessions

    async def mark_session_complete(
        self, session_id: str, completion_message: str | None = None
    ) -> bool:
        """
        Flag a session as complete.

        Returns:
            True only for the call that moved the session into the complete
            state. Unknown and already complete sessions return False.
        """

        def apply(current: ArchitectSession | None) -> ArchitectSession | None:
            if current is None or current.is_complete:
                return None
            now = datetime.now(UTC)
            current.is_complete = True
            current.completed_at = now
            current.last_activity = now
            if completion_message is not None:
                current.completion_message = completion_message
            return current

        session = await self._update_session(session_id, "mark_session_complete", apply)
        if session is None:
            logger.info("Session not moved to complete", session_id=session_id)
            return False

        logger.info("Session marked complete", session_id=session_id)
        return True

    async def _update_session(
        self,
        session_id: str,
        operation: str,
        apply: Callable[[ArchitectSession | None], ArchitectSession | None],
        queue_related: Callable[[Pipeline, ArchitectSession], None] | None = None,
    ) -> ArchitectSession | None:
        """
        Read-modify-write a session record under WATCH.

        apply receives the stored record (None if absent) and returns the
        record to write, or None to leave it alone. queue_related can add
        writes to the same MULTI. If another client changes the record
        before EXEC, the whole update is retried on fresh data.
        """
        client = await self._ensure_connected()
        key = self._session_key(session_id)

        with _storage_errors(operation, session_id=session_id):
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        data = await pipe.get(key)
                        current = ArchitectSession.model_validate_json(data) if data else None
                        session = apply(current)
                        if session is None:
                            return None

                        pipe.multi()
                        pipe.set(key, session.model_dump_json())
                        if queue_related is not None:
                            queue_related(pipe, session)
                        await pipe.execute()
                        return session
                    except WatchError:
                        logger.debug(
                            "Session changed during update, retrying",
                            session_id=session_id,
                            operation=operation,
                        )

    # =========================================================================
    # Documents
    # =========================================================================

    async def _load_documents(self, session_id: str, operation: str) -> list[SpecDocument]:
        client = await self._ensure_connected()

        with _storage_errors(operation, session_id=session_id):
            raw = await client.hgetall(self._documents_key(session_id))

        documents = []
        for field, value in raw.items():
            try:
                documents.append(SpecDocument.model_validate_json(value))
            except ValueError:
                logger.warning(
                    "Ignoring unreadable stored document",
                    session_id=session_id,
                    document_type=field,
                )
        return documents

    async def list_completed_types(self, session_id: str) -> list[DocumentType]:
        """
        Document types saved for a session, ordered by creation time.

        Derived from the documents hash itself, so a type is completed
        exactly when its document is stored.
        """
        documents = await self._load_documents(session_id, "list_completed_types")
        documents.sort(key=lambda d: (d.created_at, DOCUMENT_SEQUENCE.index(d.document_type)))
        return [d.document_type for d in documents]

    async def list_documents(self, session_id: str) -> list[SpecDocument]:
        """All documents for a session, in interview sequence order."""
        documents = await self._load_documents(session_id, "list_documents")
        documents.sort(key=lambda d: DOCUMENT_SEQUENCE.index(d.document_type))
        return documents

    async def create_document(
        self,
        session_id: str,
        external_id: str,
        document_type: DocumentType | str,
        filename: str,
        content: str,
        description: str,
        next_steps: str | None = None,
        skip_technical_summary: bool = False,
    ) -> SpecDocument:
        """
        Persist a generated document.

        Args:
            session_id: Owning session.
            external_id: Owning external identity.
            document_type: Any known spelling of the document type.
            filename: Markdown filename proposed by the model.
            content: Markdown body.
            description: Short summary.
            next_steps: Optional hint for the following phase.
            skip_technical_summary: Suppress mentioning the artifact to the user.

        Returns:
            The stored document.

        Raises:
            UnknownDocumentTypeError: If document_type is not recognised.
            DuplicateDocumentError: If the session already has this type.
            StorageError: If Redis is unavailable.
        """
        client = await self._ensure_connected()

        doc_type = DocumentType.parse(document_type)
        document = SpecDocument(
            document_id=f"doc_{ULID()}",
            session_id=session_id,
            external_id=external_id,
            document_type=doc_type,
            filename=filename,
            content=content,
            description=description,
            next_steps=next_steps,
            skip_technical_summary=skip_technical_summary,
        )

        with _storage_errors("create_document", session_id=session_id, document_type=doc_type):
            created = await client.hsetnx(
                self._documents_key(session_id), doc_type.value, document.model_dump_json()
            )
            if not created:
                logger.warning(
                    "Duplicate document rejected",
                    session_id=session_id,
                    document_type=doc_type,
                )
                raise DuplicateDocumentError(session_id, doc_type)

        logger.info(
            "Document saved",
            session_id=session_id,
            document_type=doc_type,
            filename=filename,
            content_length=len(content),
        )
        return document

    # =========================================================================
    # Question counters
    # =========================================================================

    async def get_question_count(self, session_id: str, document_type: DocumentType) -> int:
        """Questions asked so far for a phase. Defaults to 0."""
        client = await self._ensure_connected()

        with _storage_errors("get_question_count", session_id=session_id):
            value = await client.hget(self._question_counts_key(session_id), document_type.value)
        return int(value) if value is not None else 0

    async def increment_question_count(
        self, session_id: str, document_type: DocumentType
    ) -> int:
        """Add one to a phase's question counter, creating it if absent."""
        client = await self._ensure_connected()

        with _storage_errors("increment_question_count", session_id=session_id):
            count = await client.hincrby(
                self._question_counts_key(session_id), document_type.value, 1
            )

        logger.debug(
            "Question count incremented",
            session_id=session_id,
            document_type=document_type,
            count=count,
        )
        return int(count)

    # =========================================================================
    # Usage events
    # =========================================================================

    async def record_usage_event(
        self, external_id: str, kind: UsageKind, session_id: str
    ) -> UsageEvent:
        """Append a usage event to the owner's monthly bucket."""
        client = await self._ensure_connected()

        event = UsageEvent(
            external_id=external_id,
            kind=kind,
            session_id=session_id,
            month=usage_month(),
        )
        with _storage_errors("record_usage_event", external_id=external_id):
            await client.rpush(
                self._usage_key(external_id, event.month), event.model_dump_json()
            )

        logger.info(
            "Usage recorded", external_id=external_id, kind=kind, session_id=session_id
        )
        return event

    async def list_usage_events(
        self, external_id: str, month: int | None = None
    ) -> list[UsageEvent]:
        """Usage events for one month (current month by default), newest first."""
        client = await self._ensure_connected()

        month = month or usage_month()
        with _storage_errors("list_usage_events", external_id=external_id):
            raw = await client.lrange(self._usage_key(external_id, month), 0, -1)
        return [UsageEvent.model_validate_json(item) for item in reversed(raw)]

    # =========================================================================
    # Intro briefs
    # =========================================================================

    async def store_intro_brief(self, session_id: str, brief: IntroBrief) -> None:
        """Store (or replace) the intake brief for a session."""
        client = await self._ensure_connected()

        with _storage_errors("store_intro_brief", session_id=session_id):
            await client.set(self._intro_brief_key(session_id), brief.model_dump_json())

    async def get_intro_brief(self, session_id: str) -> IntroBrief | None:
        """The intake brief for a session, if one was stored."""
        client = await self._ensure_connected()

        with _storage_errors("get_intro_brief", session_id=session_id):
            data = await client.get(self._intro_brief_key(session_id))
        if data is None:
            return None
        return IntroBrief.model_validate_json(data)

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            client = await self._ensure_connected()
            return bool(await client.ping())
        except RedisError:
            return False
