"""
Tests for GET /api/v1/progress.
"""

import pytest
from httpx import AsyncClient

from src.shared.document_types import DOCUMENT_SEQUENCE, DocumentType


class TestProgress:
    @pytest.mark.asyncio
    async def test_fresh_session(self, client: AsyncClient, sample_session_id) -> None:
        response = await client.get("/api/v1/progress", params={"session_id": sample_session_id})

        assert response.status_code == 200
        assert response.json() == {
            "completed_docs": [],
            "total_completed": 0,
            "total_required": 13,
            "next_document": "requirements",
        }

    @pytest.mark.asyncio
    async def test_creation_order_and_next_gap(
        self, client: AsyncClient, seed_documents, sample_session_id, sample_external_id
    ) -> None:
        """
        Given: Requirements then backend saved, frontend skipped
        When: GET /api/v1/progress
        Then: Docs are listed in creation order and frontend is next
        """
        await seed_documents(
            sample_session_id,
            sample_external_id,
            [DocumentType.REQUIREMENTS, DocumentType.BACKEND_ARCHITECTURE],
        )

        response = await client.get("/api/v1/progress", params={"session_id": sample_session_id})

        data = response.json()
        assert data["completed_docs"] == ["requirements", "backend-architecture"]
        assert data["next_document"] == "frontend-architecture"

    @pytest.mark.asyncio
    async def test_complete(
        self, client: AsyncClient, seed_documents, sample_session_id, sample_external_id
    ) -> None:
        await seed_documents(sample_session_id, sample_external_id, DOCUMENT_SEQUENCE)

        response = await client.get("/api/v1/progress", params={"session_id": sample_session_id})

        data = response.json()
        assert data["total_completed"] == 13
        assert data["next_document"] is None
