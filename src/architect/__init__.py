# Architect module
"""
Architecture interview engine.

Walks a user through thirteen document phases, asking a bounded number of
questions per phase and having an LLM write and save one specification
document per phase.
"""

from src.architect.gateway import ProviderGateway, build_gateway
from src.architect.orchestrator import ArchitectOrchestrator
from src.architect.providers import ProviderError, ProviderSettings
from src.architect.turns import (
    InvalidTurnError,
    ProviderUnavailableError,
    SessionAccessError,
    TurnFailedError,
    TurnRequest,
    TurnResult,
)

__all__ = [
    "ArchitectOrchestrator",
    "InvalidTurnError",
    "ProviderError",
    "ProviderGateway",
    "ProviderSettings",
    "ProviderUnavailableError",
    "SessionAccessError",
    "TurnFailedError",
    "TurnRequest",
    "TurnResult",
    "build_gateway",
]
