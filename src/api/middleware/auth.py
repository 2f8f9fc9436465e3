"""
Bearer-key authentication for parent applications.

Enabled only when keys are configured. Health and documentation endpoints
stay open so the host can probe the service without credentials.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.api.auth.key_validator import APIKeyValidator

logger = structlog.get_logger(__name__)

# Paths that don't require authentication
EXEMPT_PATHS = {
    "/api/v1/health",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Validates the Authorization bearer key and records the calling app.

    The parent application name is stored on request.state.parent_app and
    bound into the structlog context for the rest of the request.
    """

    def __init__(self, app, validator: APIKeyValidator | None = None) -> None:
        super().__init__(app)
        self.validator = validator or APIKeyValidator()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._is_exempt(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            logger.warning("Missing Authorization header", path=request.url.path)
            return self._unauthorized_response("Missing Authorization header")

        api_key = self._extract_bearer_token(auth_header)
        if api_key is None:
            logger.warning("Malformed Authorization header", path=request.url.path)
            return self._unauthorized_response(
                "Invalid Authorization header format. Expected: Bearer <token>"
            )

        parent_app = self.validator.identify(api_key)
        if parent_app is None:
            logger.warning(
                "Invalid API key",
                path=request.url.path,
                key_prefix=api_key[:8] + "..." if len(api_key) > 8 else "***",
            )
            return self._unauthorized_response("Invalid API key")

        request.state.parent_app = parent_app
        with structlog.contextvars.bound_contextvars(parent_app=parent_app):
            return await call_next(request)

    def _is_exempt(self, path: str) -> bool:
        if path in EXEMPT_PATHS:
            return True
        # Prefixes such as /docs/oauth2-redirect
        return any(path.startswith(exempt_path + "/") for exempt_path in EXEMPT_PATHS)

    def _extract_bearer_token(self, auth_header: str) -> str | None:
        """Token from a "Bearer <token>" header, or None for any other shape."""
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    def _unauthorized_response(self, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"error": {"code": "unauthorized", "message": message}},
        )
