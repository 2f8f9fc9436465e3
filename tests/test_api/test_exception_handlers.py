"""
Tests for the global exception handlers.
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from src.api.exception_handlers import GENERIC_FAILURE_MESSAGE, register_exception_handlers
from src.api.middleware.request_id import RequestIdMiddleware
from src.architect.turns import (
    InvalidTurnError,
    ProviderUnavailableError,
    SessionAccessError,
    TurnFailedError,
)
from src.shared.redis_client import StorageError


def create_test_app():
    """Create test app with exception handlers."""
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    class TestRequest(BaseModel):
        name: str
        age: int

    @app.post("/test")
    async def test_endpoint(request: TestRequest):  # noqa: ARG001
        return {"ok": True}

    @app.get("/error/404")
    async def not_found():
        raise HTTPException(status_code=404, detail="Resource not found")

    @app.get("/error/500")
    async def internal_error():
        raise ValueError("Something went wrong")

    @app.get("/error/invalid-turn")
    async def invalid_turn():
        raise InvalidTurnError("messages array required")

    @app.get("/error/access")
    async def access_denied():
        raise SessionAccessError("sess_1", "intruder")

    @app.get("/error/turn-failed")
    async def turn_failed():
        raise TurnFailedError("both providers down: quota exceeded", "openai")

    @app.get("/error/provider")
    async def provider_unavailable():
        raise ProviderUnavailableError("AI provider is not configured")

    @app.get("/error/storage")
    async def storage():
        raise StorageError("Connection refused", "get_session")

    @app.get("/chat")
    async def chat_storage():
        raise StorageError("Connection refused", "create_document")

    return app


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=create_test_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client


class TestPydanticValidationError:
    @pytest.mark.asyncio
    async def test_validation_error_returns_422(self, client):
        """
        Given: Invalid request body
        When: POST /test with invalid data
        Then: Returns 422 with field-level errors in standard format
        """
        response = await client.post("/test", json={"name": 123, "age": "not-a-number"})

        assert response.status_code == 422
        data = response.json()
        assert data["error"]["code"] == "validation_error"
        for error in data["error"]["details"]["errors"]:
            assert {"field", "message", "type"} <= error.keys()


class TestUnhandledException:
    @pytest.mark.asyncio
    async def test_no_details_in_production(self, client):
        with patch.dict("os.environ", {"ENVIRONMENT": "production"}):
            response = await client.get("/error/500")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "internal_error"
        assert "traceback" not in str(data)
        assert "ValueError" not in str(data)

    @pytest.mark.asyncio
    async def test_details_in_development(self, client):
        with patch.dict("os.environ", {"ENVIRONMENT": "development"}):
            response = await client.get("/error/500")

        assert response.json()["error"]["details"]["exception_type"] == "ValueError"


class TestHTTPException:
    @pytest.mark.asyncio
    async def test_http_exception_standard_format(self, client):
        response = await client.get("/error/404")

        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "not_found", "message": "Resource not found"}
        }


class TestInterviewErrors:
    @pytest.mark.asyncio
    async def test_invalid_turn_is_400(self, client):
        response = await client.get("/error/invalid-turn")

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "invalid_request",
            "message": "messages array required",
        }

    @pytest.mark.asyncio
    async def test_session_access_looks_like_missing(self, client):
        response = await client.get("/error/access")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "session_not_found"
        assert "intruder" not in response.text

    @pytest.mark.asyncio
    async def test_turn_failure_is_generic(self, client):
        """
        Given: Every provider failed
        When: The error reaches the handler
        Then: A generic 500 is returned without provider detail
        """
        response = await client.get("/error/turn-failed")

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "chat_failed",
            "message": GENERIC_FAILURE_MESSAGE,
        }
        assert "quota" not in response.text

    @pytest.mark.asyncio
    async def test_provider_unavailable_is_503(self, client):
        response = await client.get("/error/provider")

        assert response.status_code == 503
        assert response.json()["error"] == {
            "code": "provider_unavailable",
            "message": "AI provider is not configured",
        }

    @pytest.mark.asyncio
    async def test_storage_error(self, client):
        response = await client.get("/error/storage")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "storage_error"
        assert "Connection refused" not in response.text

    @pytest.mark.asyncio
    async def test_storage_error_during_chat(self, client):
        response = await client.get("/chat")

        assert response.json()["error"]["code"] == "chat_failed"


class TestErrorIncludesRequestId:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/error/404", "/error/500", "/error/turn-failed"])
    async def test_error_has_request_id(self, client, path):
        response = await client.get(path)

        assert "X-Request-ID" in response.headers
        assert response.headers["X-Request-ID"].startswith("req_")


class TestAPIVersionHeader:
    @pytest.mark.asyncio
    async def test_api_version_on_success(self, store):
        from src.api.dependencies import get_redis_client
        from src.api.main import create_app

        app = create_app()
        app.dependency_overrides[get_redis_client] = lambda: store
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            response = await client.get("/api/v1/health")

        assert response.headers["X-API-Version"] == "1.0.0"
