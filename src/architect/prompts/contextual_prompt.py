"""
Per-turn instruction builder.

The instruction is the base prompt followed by independent segments: tech
decisions, mode, timeline, intro brief and session state. It is rebuilt from
stored progress on every call, including the follow-up after a document save.
"""

from src.architect.phases import PhaseState
from src.architect.prompts.base_prompt import SYSTEM_PROMPT
from src.shared.models import IntroBrief

MIN_TIMELINE = 1
MAX_TIMELINE = 10

TECH_DEFAULTS = (
    "React Native + Expo, Node.js + TypeScript, PostgreSQL + Prisma, "
    "Zustand + React Query, JWT auth, Vercel/Fly.io deployment"
)


def clamp_timeline(timeline: int) -> int:
    """Force a timeline ordinal into the supported 1-10 range."""
    return max(MIN_TIMELINE, min(MAX_TIMELINE, int(timeline)))


def build_tech_decisions_segment() -> str:
    return (
        "## TECHNICAL DECISIONS MODE ACTIVE\n"
        "The user wants you to make the technical decisions. Do not ask technical "
        "questions; silently choose sensible defaults "
        f"({TECH_DEFAULTS}) and ask only product and business questions."
    )


def build_mode_segment(fast_mode: bool) -> str:
    if fast_mode:
        return (
            "## FAST MODE ACTIVE\n"
            "Use the reduced question budget for each document type "
            "(requirements 5; frontend, backend, database and user flows 3; "
            "API, deployment and summary 2; everything else 1). "
            "Ask only the most uncertain questions where you need user input."
        )
    return (
        "## NORMAL MODE ACTIVE\n"
        "Use the standard budget of 6 questions per document type. "
        "Focus on thorough requirement gathering."
    )


def build_timeline_segment(timeline: int) -> str:
    return (
        "## TIMELINE CONTEXT\n"
        f"Project timeline setting: {clamp_timeline(timeline)}/10. Use it to shape "
        "scope and technology recommendations. Never mention the setting or any "
        "specific timeframe to the user."
    )


def build_intro_brief_segment(brief: IntroBrief) -> str:
    """
    Compact paraphrase of the intake facts plus the first-turn format contract.

    The contract keeps the opening of the interview to a one-line recap and a
    single concrete question, so the user is not asked again for facts the
    intake already collected.
    """
    facts = [
        ("What they're creating", brief.what_theyre_doing),
        ("Project type", brief.project_type),
        ("Target audience", brief.audience),
        ("Problem solving", brief.problem),
        ("Timeline", brief.timeline),
        ("Team size", brief.team_size),
    ]
    fact_lines = "\n".join(f"- {label}: {value}" for label, value in facts if value)

    return (
        "## PROJECT CONTEXT FROM INTRO\n"
        f"{fact_lines}\n\n"
        "Do not ask again for anything listed above.\n\n"
        "**FIRST MESSAGE FORMAT**: If the conversation has only the user's first "
        "message, reply with exactly one enthusiastic sentence recapping what they "
        "are building, immediately followed by exactly one concrete product "
        "question. For example:\n"
        '"Great! I understand you\'re building a mobile pickleball app for the '
        "public. What are the core features players will use most, such as "
        'booking courts, tracking games or finding opponents?"\n\n'
        "Rules for the first message:\n"
        "- NO bullet-point lists or summaries\n"
        "- NO meta questions such as \"what would you like to focus on\"\n"
        "- Ask a specific product question right after the recap"
    )


def build_session_state_segment(state: PhaseState) -> str:
    """
    Progress framing: what is done, what is next, how much budget is left.

    Only the pending type is ever named as the next document.
    """
    next_type = state.next_type
    completed = ", ".join(doc_type.value for doc_type in state.completed)

    if state.budget_reached:
        directive = (
            "QUESTION LIMIT REACHED: make background decisions for the remaining "
            f"questions and create the {next_type} document immediately."
        )
    else:
        directive = (
            f"Ask only the highest-uncertainty questions for {next_type}. When the "
            "limit is reached or you have enough information, create the document "
            "with background decisions for anything not asked."
        )

    return (
        "## SESSION CONTEXT\n"
        f"Completed documents: {completed}\n"
        f"NEXT DOCUMENT TO CREATE: {next_type}\n"
        f"Questions asked for {next_type}: {state.question_count}/{state.question_limit}\n\n"
        f"{directive}\n\n"
        "Do NOT create documents that already exist. When you have enough "
        f"information about {next_type}, call save_specification_document with "
        f'document_type "{next_type}", then move on to the next phase.'
    )


def build_contextual_prompt(
    phase_state: PhaseState,
    tech_decisions: bool = False,
    fast_mode: bool = True,
    timeline: int = 1,
    intro_brief: IntroBrief | None = None,
) -> str:
    """
    Assemble the system instruction for one provider call.

    Args:
        phase_state: Progress re-derived from the store for this call.
        tech_decisions: Let the model pick the stack and ask product questions only.
        fast_mode: Use per-type question budgets instead of the uniform 6.
        timeline: Ordinal 1-10, clamped.
        intro_brief: Facts from the intake flow, if any.

    Returns:
        The full instruction string.
    """
    segments = [SYSTEM_PROMPT]

    if tech_decisions:
        segments.append(build_tech_decisions_segment())

    segments.append(build_mode_segment(fast_mode))
    segments.append(build_timeline_segment(timeline))

    if intro_brief is not None and not intro_brief.is_empty:
        segments.append(build_intro_brief_segment(intro_brief))

    if phase_state.completed and phase_state.next_type is not None:
        segments.append(build_session_state_segment(phase_state))

    return "\n\n".join(segments)
