"""Exception hierarchy for docloom.

Tool and agent execution failures are not exceptions: they are returned as
``ToolResultData(is_error=True)`` and fed back to the model.  Everything here
is terminal for the request that raised it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docloom.types.documents import Violation
    from docloom.types.messages import AnalysisOutcome


class DocloomError(Exception):
    """Base class for all docloom errors."""


class PreconditionError(DocloomError):
    """A request can never succeed as given; surfaced immediately, never retried."""


class TemplateNotFoundError(PreconditionError):
    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        super().__init__(
            f"Unknown template: {name!r}. Available: {', '.join(sorted(available)) or '(none)'}"
        )


class AgentNotFoundError(PreconditionError):
    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        super().__init__(
            f"Unknown agent: {name!r}. Available: {', '.join(sorted(available)) or '(none)'}"
        )


class AgentDefinitionError(DocloomError):
    """An agent definition file is malformed."""


class AgentExecutionError(DocloomError):
    """A runner-mode agent failed; tool-mode failures are never raised."""


class TransportError(DocloomError):
    """The model API could not be reached or refused the request.

    ``retryable`` records whether the underlying failure was transient (and
    the retry budget ran out) or permanent (authentication, bad request).
    """

    def __init__(self, message: str, *, retryable: bool = False, attempts: int = 1) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.attempts = attempts


class RepairExhaustedError(DocloomError):
    """The model never produced a schema-conformant document."""

    def __init__(
        self, draft: str, violations: tuple[Violation, ...], attempts: int,
    ) -> None:
        self.draft = draft
        self.violations = violations
        self.attempts = attempts
        super().__init__(
            f"Document failed schema validation after {attempts} attempt(s) "
            f"with {len(violations)} violation(s)"
        )


class AnalysisError(DocloomError):
    """The analysis loop ended without a usable answer."""

    def __init__(self, outcome: AnalysisOutcome) -> None:
        self.outcome = outcome
        detail = outcome.error or outcome.status.value
        super().__init__(
            f"Analysis ended with {outcome.status.value} after {outcome.turns} turn(s): {detail}"
        )
