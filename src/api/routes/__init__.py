# API Routes
"""
API route modules.
"""

from src.api.routes import chat, health, intro_brief, progress, sessions, usage

__all__ = ["chat", "health", "intro_brief", "progress", "sessions", "usage"]
