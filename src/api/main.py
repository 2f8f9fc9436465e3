"""
FastAPI application entry point.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from src.api.auth.key_validator import APIKeyValidator
from src.api.dependencies import close_dependencies
from src.api.exception_handlers import register_exception_handlers
from src.api.middleware.api_version import API_VERSION, APIVersionMiddleware
from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.request_id import RequestIdMiddleware
from src.api.routes import chat, health, intro_brief, progress, sessions, usage
from src.shared.log_config import configure_logging


def custom_openapi(app: FastAPI):
    """Generate the OpenAPI schema with the bearer security scheme."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["components"] = openapi_schema.get("components", {})
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "description": "Parent application key, passed as a Bearer token.",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]

    openapi_schema["info"]["x-custom-headers"] = {
        "X-Request-ID": "Unique identifier for request tracing. Auto-generated if not provided.",
        "X-API-Version": f"API version number. Currently: {API_VERSION}",
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns configured app with middleware and routers.
    """
    configure_logging()

    app = FastAPI(
        title="Project Architect Widget",
        description="""
Conversational architecture interview embedded in parent applications.

The assistant walks the user through 13 document phases (requirements,
frontend, backend, ... README), asking a bounded number of questions per
phase and saving one markdown specification per phase.

## Authentication

When API keys are configured, every endpoint except `/health` requires a
parent application key:

```
Authorization: Bearer your-api-key-here
```

## Request Tracing

Each request is assigned a unique `X-Request-ID` for tracing.
You can provide your own ID in the request header.

## Error Responses

All errors follow a consistent format:
```json
{
  "error": {
    "code": "error_code",
    "message": "Human-readable message",
    "details": {}
  }
}
```
""",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.openapi = lambda: custom_openapi(app)

    # Configure middleware (order matters: first added = last to execute)
    _configure_middleware(app)

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
    app.include_router(progress.router, prefix="/api/v1", tags=["progress"])
    app.include_router(sessions.router, prefix="/api/v1", tags=["sessions"])
    app.include_router(usage.router, prefix="/api/v1", tags=["usage"])
    app.include_router(intro_brief.router, prefix="/api/v1", tags=["intro-brief"])

    return app


def _configure_middleware(app: FastAPI) -> None:
    """
    Configure middleware for the application.

    Middleware execution order (from outermost to innermost):
    1. CORSMiddleware - Only when ALLOWED_ORIGINS is set
    2. APIVersionMiddleware - Adds X-API-Version header
    3. RequestIdMiddleware - Assigns/preserves X-Request-ID
    4. AuthMiddleware - Validates the parent app key (only when keys are configured)

    Response flows back in reverse order.
    """
    if os.getenv("API_KEYS") or os.getenv("API_KEYS_FILE"):
        app.add_middleware(AuthMiddleware, validator=APIKeyValidator())

    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(APIVersionMiddleware, version=API_VERSION)

    allowed_origins = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


# Create the application instance
app = create_app()
