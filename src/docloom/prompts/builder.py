"""Prompt assembly for one-shot generation, repair and agent analysis."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from docloom.types.documents import Template, Violation

GENERATION_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates structured JSON output "
    "based on the provided instructions. Always respond with valid JSON only."
)


def schema_json(schema: dict[str, Any]) -> str:
    return json.dumps(schema, indent=2)


def format_violations(violations: Sequence[Violation]) -> str:
    """Bulleted ``- field: message`` list."""
    return "\n".join(f"- {v.describe()}" for v in violations)


def build_generation_prompt(source_content: str, template: Template) -> str:
    """One-shot prompt: template instructions, schema and the ingested sources."""
    return (
        "You are a technical documentation generator. Your task is to generate structured "
        "JSON content based on the provided source documents and template requirements.\n\n"
        "## Template Instructions\n"
        f"{template.prompt}\n\n"
        "## JSON Schema\n"
        "Your response MUST conform to the following JSON schema:\n"
        f"```json\n{schema_json(template.schema)}\n```\n\n"
        "## Source Documents\n"
        "Use the following source content to generate the JSON fields:\n"
        f"```\n{source_content}\n```\n\n"
        "## Instructions\n"
        "1. Analyze the source documents carefully\n"
        "2. Generate JSON that matches the schema exactly\n"
        "3. Use information from the source documents to populate the fields\n"
        "4. Ensure all required fields are present\n"
        "5. Return ONLY valid JSON, no additional text or markdown formatting\n"
    )


def build_repair_prompt(
    original_prompt: str,
    draft: str,
    violations: Sequence[Violation],
    schema: dict[str, Any],
) -> str:
    """Repair prompt: the invalid draft verbatim plus its violations.

    The model is asked for the complete corrected document, never a diff.
    """
    return (
        "The previously generated JSON failed validation. Fix the issues below and "
        "return the complete corrected document.\n\n"
        "## Violations\n"
        f"{format_violations(violations)}\n\n"
        "## Previous Output\n"
        f"```json\n{draft}\n```\n\n"
        "## Required Schema\n"
        f"```json\n{schema_json(schema)}\n```\n\n"
        "## Original Context\n"
        f"{original_prompt}\n\n"
        "## Repair Instructions\n"
        "1. Fix every violation listed above\n"
        "2. Preserve all valid content from the previous output\n"
        "3. Return the FULL corrected JSON document, not a diff or a fragment\n"
        "4. Return ONLY the JSON, no additional text\n"
    )


def build_analysis_user_prompt(template: Template, source_path: str) -> str:
    """Initial user prompt for an agent-driven analysis session."""
    return (
        f"{template.analysis_user_prompt}\n\n"
        f"Repository path: {source_path}\n\n"
        "When you have gathered enough information, reply with the final document as a "
        "single JSON object (no tool calls) conforming to this schema:\n"
        f"```json\n{schema_json(template.schema)}\n```"
    )


def build_correction_note(violations: Sequence[Violation]) -> str:
    """Fed back into the analysis conversation after a malformed final answer."""
    return (
        "Your final answer was not accepted:\n"
        f"{format_violations(violations)}\n\n"
        "Please format your response as valid JSON matching the template schema. "
        "Reply with the complete JSON document only."
    )


def estimate_tokens(text: str) -> int:
    """Rough estimate, about 4 characters per token."""
    return max(0, len(text) // 4)
