"""
Interview phase machinery.

A phase is one document type's question-and-synthesis cycle. Progress is
always derived from the documents persisted for a session, never from the
conversation held in memory, so it survives restarts and concurrent turns.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from src.shared.document_types import DOCUMENT_SEQUENCE, DocumentType
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)

NORMAL_MODE_QUESTION_LIMIT = 6
DEFAULT_FAST_MODE_QUESTION_LIMIT = 3

FAST_MODE_QUESTION_LIMITS: dict[DocumentType, int] = {
    DocumentType.REQUIREMENTS: 5,
    DocumentType.FRONTEND_ARCHITECTURE: 3,
    DocumentType.BACKEND_ARCHITECTURE: 3,
    DocumentType.STATE_MANAGEMENT: 1,
    DocumentType.DATABASE_SCHEMA: 3,
    DocumentType.API_SPECIFICATION: 2,
    DocumentType.DEPLOYMENT: 2,
    DocumentType.TESTING_STRATEGY: 1,
    DocumentType.DOCUMENTATION_STANDARDS: 1,
    DocumentType.PERFORMANCE: 1,
    DocumentType.USER_FLOWS: 3,
    DocumentType.THIRD_PARTY_DEPENDENCIES: 1,
    DocumentType.SUMMARY: 2,
}

_OPTIONS_ESCAPE = "\n\nOr specify something different if you'd like."

# Served verbatim when the model goes quiet after saving a document.
LEAD_QUESTIONS: dict[DocumentType, str] = {
    DocumentType.REQUIREMENTS: "What product do you want to build?",
    DocumentType.FRONTEND_ARCHITECTURE: (
        "What platform do you want to target?\n"
        "- A) Mobile app (React Native + Expo)\n"
        "- B) Web app (React + Next.js)\n"
        "- C) Desktop app (Electron)" + _OPTIONS_ESCAPE
    ),
    DocumentType.BACKEND_ARCHITECTURE: (
        "What backend architecture do you prefer?\n"
        "- A) Node.js + TypeScript REST API\n"
        "- B) Python FastAPI\n"
        "- C) Serverless (AWS Lambda/Vercel)" + _OPTIONS_ESCAPE
    ),
    DocumentType.STATE_MANAGEMENT: (
        "How do you want to handle state management?\n"
        "- A) Zustand + React Query\n"
        "- B) Redux Toolkit + RTK Query\n"
        "- C) Context API + useState" + _OPTIONS_ESCAPE
    ),
    DocumentType.DATABASE_SCHEMA: (
        "What database setup do you prefer?\n"
        "- A) PostgreSQL + Prisma ORM\n"
        "- B) MongoDB + Mongoose\n"
        "- C) Supabase (PostgreSQL + auth)" + _OPTIONS_ESCAPE
    ),
    DocumentType.API_SPECIFICATION: (
        "What API approach do you want?\n"
        "- A) REST with OpenAPI/Swagger docs\n"
        "- B) GraphQL with Apollo\n"
        "- C) tRPC for type-safe APIs" + _OPTIONS_ESCAPE
    ),
    DocumentType.DEPLOYMENT: (
        "What deployment setup do you prefer?\n"
        "- A) Vercel + PlanetScale (simple)\n"
        "- B) AWS with Docker containers\n"
        "- C) Google Cloud Run" + _OPTIONS_ESCAPE
    ),
    DocumentType.TESTING_STRATEGY: (
        "What testing approach do you want?\n"
        "- A) Jest + React Testing Library\n"
        "- B) Vitest + Testing Library\n"
        "- C) Cypress for E2E + unit tests" + _OPTIONS_ESCAPE
    ),
    DocumentType.DOCUMENTATION_STANDARDS: (
        "How do you want to structure code documentation?\n"
        "- A) TypeScript + JSDoc comments\n"
        "- B) Storybook for components\n"
        "- C) API docs with Swagger/OpenAPI" + _OPTIONS_ESCAPE
    ),
    DocumentType.PERFORMANCE: (
        "What performance priorities do you have?\n"
        "- A) Mobile-first optimization\n"
        "- B) Database query optimization\n"
        "- C) Bundle size and loading speed" + _OPTIONS_ESCAPE
    ),
    DocumentType.USER_FLOWS: (
        "What are the core user flows to document?\n"
        "- A) Onboarding and authentication\n"
        "- B) Main feature workflows\n"
        "- C) Admin/management flows" + _OPTIONS_ESCAPE
    ),
    DocumentType.THIRD_PARTY_DEPENDENCIES: (
        "What external services do you need?\n"
        "- A) Authentication (Auth0, Clerk)\n"
        "- B) Payments (Stripe, PayPal)\n"
        "- C) Analytics (PostHog, Mixpanel)" + _OPTIONS_ESCAPE
    ),
    DocumentType.SUMMARY: (
        "What should be emphasized in the README?\n"
        "- A) Quick start guide\n"
        "- B) Architecture overview\n"
        "- C) Deployment instructions" + _OPTIONS_ESCAPE
    ),
}

COMPLETION_MESSAGE = (
    "🎉 **Project Complete!** All 13 architecture documents have been generated.\n\n"
    "**Next Steps:**\n"
    "• View your complete specifications in the Dashboard\n"
    "• Download your project files\n"
    "• Start building!\n\n"
    "I won't ask any more questions. Your architecture is ready to implement."
)


def next_pending_type(completed: Iterable[DocumentType | str]) -> DocumentType | None:
    """
    First type in sequence order that has not been completed.

    Returns:
        The next DocumentType, or None once all thirteen are done.
    """
    done = set()
    for value in completed:
        try:
            done.add(DocumentType.parse(value))
        except ValueError:
            logger.warning("Ignoring unknown completed type", document_type=str(value))

    for doc_type in DOCUMENT_SEQUENCE:
        if doc_type not in done:
            return doc_type
    return None


def is_complete(completed: Iterable[DocumentType | str]) -> bool:
    """Whether every type in the sequence has been completed."""
    return next_pending_type(completed) is None


def question_limit(document_type: DocumentType | str, fast_mode: bool) -> int:
    """
    Maximum questions allowed for a phase.

    Fast mode uses per-type budgets (unknown types get 3); normal mode allows
    6 questions for every type.
    """
    if not fast_mode:
        return NORMAL_MODE_QUESTION_LIMIT

    try:
        doc_type = DocumentType.parse(document_type)
    except ValueError:
        return DEFAULT_FAST_MODE_QUESTION_LIMIT
    return FAST_MODE_QUESTION_LIMITS.get(doc_type, DEFAULT_FAST_MODE_QUESTION_LIMIT)


def lead_question(document_type: DocumentType) -> str:
    """Canonical opening question for a phase."""
    return LEAD_QUESTIONS[document_type]


def looks_like_question(text: str) -> bool:
    """
    Heuristic used to count questions: any question mark in the reply.

    Rhetorical questions count too, so budgets are approximate.
    """
    return "?" in text


@dataclass
class PhaseState:
    """Snapshot of a session's progress at the start of a turn."""

    completed: list[DocumentType]
    next_type: DocumentType | None
    question_count: int = 0
    question_limit: int = NORMAL_MODE_QUESTION_LIMIT

    @property
    def is_complete(self) -> bool:
        return self.next_type is None

    @property
    def budget_reached(self) -> bool:
        return self.question_count >= self.question_limit

    @property
    def total_completed(self) -> int:
        return len(self.completed)


class QuestionBudget:
    """Reads and updates per-phase question counters in the store."""

    def __init__(self, store: RedisClient) -> None:
        self._store = store

    async def count(self, session_id: str, document_type: DocumentType) -> int:
        return await self._store.get_question_count(session_id, document_type)

    async def reached(
        self, session_id: str, document_type: DocumentType, fast_mode: bool
    ) -> bool:
        """True when the phase has used its whole question budget."""
        count = await self.count(session_id, document_type)
        return count >= question_limit(document_type, fast_mode)

    async def increment(self, session_id: str, document_type: DocumentType) -> int:
        return await self._store.increment_question_count(session_id, document_type)


async def load_phase_state(
    store: RedisClient, session_id: str, fast_mode: bool
) -> PhaseState:
    """Re-derive completed types, next type and its budget from the store."""
    completed = await store.list_completed_types(session_id)
    next_type = next_pending_type(completed)

    if next_type is None:
        return PhaseState(completed=completed, next_type=None)

    return PhaseState(
        completed=completed,
        next_type=next_type,
        question_count=await QuestionBudget(store).count(session_id, next_type),
        question_limit=question_limit(next_type, fast_mode),
    )

