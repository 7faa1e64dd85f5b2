"""Prompt construction."""

from docloom.prompts.builder import (
    GENERATION_SYSTEM_PROMPT,
    build_analysis_user_prompt,
    build_correction_note,
    build_generation_prompt,
    build_repair_prompt,
    estimate_tokens,
)

__all__ = [
    "GENERATION_SYSTEM_PROMPT",
    "build_analysis_user_prompt",
    "build_correction_note",
    "build_generation_prompt",
    "build_repair_prompt",
    "estimate_tokens",
]
