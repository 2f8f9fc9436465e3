"""
Prompt builders for the architecture interview.
"""

from src.architect.prompts.base_prompt import SYSTEM_PROMPT
from src.architect.prompts.contextual_prompt import build_contextual_prompt, clamp_timeline

__all__ = ["SYSTEM_PROMPT", "build_contextual_prompt", "clamp_timeline"]
