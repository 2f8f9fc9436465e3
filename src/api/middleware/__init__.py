# API Middleware
"""
Middleware: API version header, request ids and parent-app authentication.
"""

from src.api.middleware.api_version import APIVersionMiddleware
from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "APIVersionMiddleware",
    "AuthMiddleware",
    "RequestIdMiddleware",
    "get_request_id",
]
