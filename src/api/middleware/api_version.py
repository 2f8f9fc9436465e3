"""
Adds the X-API-Version header to every response.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

API_VERSION = "1.0.0"
API_VERSION_HEADER = "X-API-Version"


class APIVersionMiddleware(BaseHTTPMiddleware):
    """Stamps responses with the API version the widget is talking to."""

    def __init__(self, app, version: str = API_VERSION) -> None:
        super().__init__(app)
        self.version = version

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers[API_VERSION_HEADER] = self.version
        return response
