# API Authentication
"""
Bearer-key authentication for parent applications embedding the widget.
"""

from src.api.auth.key_validator import APIKeyValidator

__all__ = ["APIKeyValidator"]
