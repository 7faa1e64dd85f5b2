"""Validation-repair loop: generate, validate, and re-prompt with the violations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from docloom.errors import RepairExhaustedError
from docloom.prompts.builder import GENERATION_SYSTEM_PROMPT, build_repair_prompt
from docloom.providers.base import collect_reply
from docloom.types.documents import GenerationAttempt
from docloom.types.providers import ChatMessage, ProviderAdapter
from docloom.validate.validator import validate_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RepairResult:
    """A schema-conformant document and the attempts it took."""

    fields: dict[str, Any]
    attempts: tuple[GenerationAttempt, ...]

    @property
    def attempt(self) -> GenerationAttempt:
        return self.attempts[-1]


class RepairLoop:
    """Bounded generate/validate/repair cycle.

    Attempt 0 sends the primary prompt; each later attempt sends a repair
    prompt carrying the previous draft verbatim and its violations.  At most
    ``max_repairs + 1`` attempts are made.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        *,
        max_repairs: int = 3,
        max_tokens: int = 4096,
        system_prompt: str = GENERATION_SYSTEM_PROMPT,
    ) -> None:
        if max_repairs < 0:
            raise ValueError("max_repairs must be >= 0")
        self._provider = provider
        self._max_repairs = max_repairs
        self._max_tokens = max_tokens
        self._system = system_prompt

    async def run(
        self,
        prompt: str,
        schema: dict[str, Any],
        *,
        initial_draft: str | None = None,
    ) -> RepairResult:
        """Produce a document that validates against *schema*.

        When *initial_draft* is given it is validated as attempt 0 in place
        of a model call.

        Raises
        ------
        RepairExhaustedError
            With the final draft and its violations once the budget is spent.
        TransportError
            When the model cannot be reached.
        """
        attempts: list[GenerationAttempt] = []
        request = prompt

        for index in range(self._max_repairs + 1):
            if index == 0 and initial_draft is not None:
                draft = initial_draft
            else:
                reply = await collect_reply(
                    self._provider,
                    [ChatMessage(role="user", content=request)],
                    [],
                    self._system,
                    self._max_tokens,
                    json_mode=True,
                )
                draft = reply.text

            fields, violations = validate_text(draft, schema)
            attempt = GenerationAttempt(index=index, draft=draft, violations=tuple(violations), fields=fields)
            attempts.append(attempt)

            if fields is not None:
                logger.info("Document validated on attempt %d", index)
                return RepairResult(fields=fields, attempts=tuple(attempts))

            logger.info(
                "Attempt %d/%d failed validation with %d violation(s)",
                index, self._max_repairs, len(violations),
            )
            request = build_repair_prompt(prompt, draft, violations, schema)

        last = attempts[-1]
        raise RepairExhaustedError(last.draft, last.violations, attempts=len(attempts))
