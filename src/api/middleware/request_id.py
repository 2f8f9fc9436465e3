"""
Request ID middleware for request tracing.

Every request gets an X-Request-ID. A client-supplied id is kept when it is
short and made of safe characters; otherwise a new one is generated. The id
is echoed on the response and bound into the structlog context, so every
log line of a chat turn carries it.
"""

import re
from contextvars import ContextVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

logger = structlog.get_logger(__name__)

request_id_context: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_context.get()


def generate_request_id() -> str:
    return f"req_{ULID()}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assigns or preserves X-Request-ID for each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or not _SAFE_REQUEST_ID.match(request_id):
            request_id = generate_request_id()

        token = request_id_context.set(request_id)
        try:
            request.state.request_id = request_id
            with structlog.contextvars.bound_contextvars(request_id=request_id):
                response = await call_next(request)

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_context.reset(token)
