"""
Tests for RedisClient.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.shared.document_types import DocumentType, UnknownDocumentTypeError
from src.shared.models import ChatMessage, IntroBrief, SpecDocument, UsageKind
from src.shared.redis_client import DuplicateDocumentError, RedisClient, StorageError


async def _create(store: RedisClient, session_id: str, document_type: str) -> None:
    await store.create_document(
        session_id=session_id,
        external_id="ext_1",
        document_type=document_type,
        filename=f"{document_type}.md",
        content="# Doc",
        description="desc",
    )


class TestSessions:
    """Tests for session records."""

    @pytest.mark.asyncio
    async def test_ensure_session_creates_once(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        """
        Given: No session record
        When: ensure_session is called twice with different owners
        Then: The first owner is kept
        """
        first = await store.ensure_session(sample_session_id, "owner_a")
        second = await store.ensure_session(sample_session_id, "owner_b")

        assert first.external_id == "owner_a"
        assert second.external_id == "owner_a"

    @pytest.mark.asyncio
    async def test_save_session_stores_transcript(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        messages = [
            ChatMessage(role="user", content="I want a recipe app"),
            ChatMessage(role="assistant", content="Who is it for?"),
        ]

        session = await store.save_session(
            sample_session_id, "ext_1", session_name="Recipes", messages=messages
        )

        assert session.session_name == "Recipes"
        assert await store.get_session_messages(sample_session_id) == messages

    @pytest.mark.asyncio
    async def test_list_incomplete_sessions_skips_completed(self, store: RedisClient) -> None:
        await store.ensure_session("sess_open", "ext_1")
        await store.ensure_session("sess_done", "ext_1")
        await store.ensure_session("sess_other", "ext_2")
        await store.mark_session_complete("sess_done")

        sessions = await store.list_incomplete_sessions("ext_1")

        assert [s.session_id for s in sessions] == ["sess_open"]

    @pytest.mark.asyncio
    async def test_mark_session_complete(self, store: RedisClient, sample_session_id: str) -> None:
        await store.ensure_session(sample_session_id, "ext_1")

        updated = await store.mark_session_complete(sample_session_id, "All done")
        session = await store.get_session(sample_session_id)

        assert updated is True
        assert session is not None
        assert session.is_complete is True
        assert session.completion_message == "All done"
        assert session.completed_at is not None

    @pytest.mark.asyncio
    async def test_mark_unknown_session_complete_returns_false(self, store: RedisClient) -> None:
        assert await store.mark_session_complete("sess_missing") is False

    @pytest.mark.asyncio
    async def test_mark_session_complete_transitions_once(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        """
        Given: A session that has already been completed
        When: It is marked complete again
        Then: False is returned and the first completion is kept
        """
        await store.ensure_session(sample_session_id, "ext_1")
        assert await store.mark_session_complete(sample_session_id, "First") is True
        first = await store.get_session(sample_session_id)

        assert await store.mark_session_complete(sample_session_id, "Second") is False

        session = await store.get_session(sample_session_id)
        assert session.completion_message == "First"
        assert session.completed_at == first.completed_at

    @pytest.mark.asyncio
    async def test_save_session_keeps_completion(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        await store.ensure_session(sample_session_id, "ext_1")
        await store.mark_session_complete(sample_session_id)

        await store.save_session(sample_session_id, "ext_1", session_name="Court booking")

        session = await store.get_session(sample_session_id)
        assert session.is_complete is True
        assert session.session_name == "Court booking"

    @pytest.mark.asyncio
    async def test_concurrent_save_and_complete_both_apply(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        """
        Given: A save and a completion of one session race each other
        When: Both finish
        Then: The record carries the saved name and the completion
        """
        await store.ensure_session(sample_session_id, "ext_1")

        _, transitioned = await asyncio.gather(
            store.save_session(sample_session_id, "ext_1", session_name="Court booking"),
            store.mark_session_complete(sample_session_id),
        )

        session = await store.get_session(sample_session_id)
        assert transitioned is True
        assert session.is_complete is True
        assert session.session_name == "Court booking"


class TestDocuments:
    """Tests for document persistence and uniqueness."""

    @pytest.mark.asyncio
    async def test_completed_types_in_creation_order(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        await _create(store, sample_session_id, "requirements")
        await asyncio.sleep(0.001)
        await _create(store, sample_session_id, "backend-architecture")
        await asyncio.sleep(0.001)
        await _create(store, sample_session_id, "frontend-architecture")

        completed = await store.list_completed_types(sample_session_id)

        assert completed == [
            DocumentType.REQUIREMENTS,
            DocumentType.BACKEND_ARCHITECTURE,
            DocumentType.FRONTEND_ARCHITECTURE,
        ]

    @pytest.mark.asyncio
    async def test_list_documents_in_sequence_order(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        await _create(store, sample_session_id, "summary")
        await _create(store, sample_session_id, "requirements")

        documents = await store.list_documents(sample_session_id)

        assert [d.document_type for d in documents] == [
            DocumentType.REQUIREMENTS,
            DocumentType.SUMMARY,
        ]
        assert documents[0].document_id.startswith("doc_")

    @pytest.mark.asyncio
    async def test_duplicate_rejected_under_any_spelling(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        """
        Given: A database-schema document exists
        When: Saving again as "databaseschema" or "database_schema"
        Then: DuplicateDocumentError and still one document
        """
        await _create(store, sample_session_id, "database-schema")

        for spelling in ("databaseschema", "database_schema"):
            with pytest.raises(DuplicateDocumentError) as exc_info:
                await _create(store, sample_session_id, spelling)
            assert exc_info.value.document_type == DocumentType.DATABASE_SCHEMA

        documents = await store.list_documents(sample_session_id)
        assert len(documents) == 1
        assert await store.list_completed_types(sample_session_id) == [
            DocumentType.DATABASE_SCHEMA
        ]

    @pytest.mark.asyncio
    async def test_concurrent_saves_of_same_type_store_one(
        self, store: RedisClient, sample_session_id: str
    ) -> None:
        results = await asyncio.gather(
            _create(store, sample_session_id, "requirements"),
            _create(store, sample_session_id, "prd"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, DuplicateDocumentError) for r in results) == 1
        assert len(await store.list_documents(sample_session_id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, store: RedisClient, sample_session_id: str) -> None:
        with pytest.raises(UnknownDocumentTypeError):
            await _create(store, sample_session_id, "marketing-plan")

    @pytest.mark.asyncio
    async def test_documents_are_per_session(self, store: RedisClient) -> None:
        await _create(store, "sess_a", "requirements")

        assert await store.list_completed_types("sess_b") == []

    @pytest.mark.asyncio
    async def test_stored_document_always_counts_as_completed(
        self, store: RedisClient, fake_redis, sample_session_id: str
    ) -> None:
        """
        Given: A requirements document is present in the documents hash
        When: Completed types and documents are listed
        Then: Both views report it and a second save is a duplicate
        """
        document = SpecDocument(
            document_id="doc_1",
            session_id=sample_session_id,
            external_id="ext_1",
            document_type=DocumentType.REQUIREMENTS,
            filename="requirements.md",
            content="# Doc",
            description="desc",
        )
        await fake_redis.hset(
            f"session_documents:{sample_session_id}",
            DocumentType.REQUIREMENTS.value,
            document.model_dump_json(),
        )

        assert await store.list_completed_types(sample_session_id) == [
            DocumentType.REQUIREMENTS
        ]
        assert [d.document_type for d in await store.list_documents(sample_session_id)] == [
            DocumentType.REQUIREMENTS
        ]
        with pytest.raises(DuplicateDocumentError):
            await _create(store, sample_session_id, "requirements")

    @pytest.mark.asyncio
    async def test_failed_save_leaves_views_consistent(
        self, store: RedisClient, fake_redis, sample_session_id: str, monkeypatch
    ) -> None:
        """
        Given: Redis drops the connection while a document is saved
        When: The save is retried after Redis recovers
        Then: Nothing was half-written and the retry completes the phase
        """
        monkeypatch.setattr(
            fake_redis, "hsetnx", AsyncMock(side_effect=RedisConnectionError("connection reset"))
        )
        with pytest.raises(StorageError):
            await _create(store, sample_session_id, "requirements")

        assert await store.list_completed_types(sample_session_id) == []
        assert await store.list_documents(sample_session_id) == []

        monkeypatch.undo()
        await _create(store, sample_session_id, "requirements")

        completed = await store.list_completed_types(sample_session_id)
        documents = await store.list_documents(sample_session_id)
        assert completed == [DocumentType.REQUIREMENTS]
        assert [d.document_type for d in documents] == completed


class TestQuestionCounts:
    """Tests for per-phase question counters."""

    @pytest.mark.asyncio
    async def test_count_defaults_to_zero(self, store: RedisClient, sample_session_id: str) -> None:
        assert await store.get_question_count(sample_session_id, DocumentType.REQUIREMENTS) == 0

    @pytest.mark.asyncio
    async def test_increment_upserts(self, store: RedisClient, sample_session_id: str) -> None:
        api = DocumentType.API_SPECIFICATION

        assert await store.increment_question_count(sample_session_id, api) == 1
        assert await store.increment_question_count(sample_session_id, api) == 2

        assert await store.get_question_count(sample_session_id, api) == 2
        assert await store.get_question_count(sample_session_id, DocumentType.DEPLOYMENT) == 0


class TestUsageAndBriefs:
    """Tests for usage events and intro briefs."""

    @pytest.mark.asyncio
    async def test_usage_events_newest_first(self, store: RedisClient) -> None:
        await store.record_usage_event("ext_1", UsageKind.SESSION_SAVED, "sess_a")
        await store.record_usage_event("ext_1", UsageKind.SESSION_COMPLETE, "sess_a")
        await store.record_usage_event("ext_2", UsageKind.SESSION_SAVED, "sess_b")

        events = await store.list_usage_events("ext_1")

        assert [e.kind for e in events] == [UsageKind.SESSION_COMPLETE, UsageKind.SESSION_SAVED]

    @pytest.mark.asyncio
    async def test_intro_brief_round_trip(self, store: RedisClient, sample_session_id: str) -> None:
        brief = IntroBrief(what_theyre_doing="A pickleball court finder", audience="Players")

        await store.store_intro_brief(sample_session_id, brief)

        assert await store.get_intro_brief(sample_session_id) == brief
        assert await store.get_intro_brief("sess_missing") is None


class TestStorageErrors:
    """Tests for Redis failure translation."""

    @pytest.mark.asyncio
    async def test_redis_failure_becomes_storage_error(self, sample_session_id: str) -> None:
        """
        Given: Redis is unreachable
        When: A document is created
        Then: StorageError naming the operation is raised
        """
        broken = AsyncMock()
        broken.hsetnx.side_effect = RedisConnectionError("connection refused")
        store = RedisClient()
        store._client = broken

        with pytest.raises(StorageError) as exc_info:
            await _create(store, sample_session_id, "requirements")

        assert exc_info.value.operation == "create_document"

    @pytest.mark.asyncio
    async def test_ping_reports_failure(self) -> None:
        broken = AsyncMock()
        broken.ping.side_effect = RedisConnectionError("connection refused")
        store = RedisClient()
        store._client = broken

        assert await store.ping() is False
