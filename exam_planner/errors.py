"""Exception hierarchy for the study-plan generation pipeline."""

from __future__ import annotations

from typing import Any


class PlanGenerationError(Exception):
    """Base class for every error the pipeline raises on purpose."""

    kind = "internal"


class SurveyValidationError(PlanGenerationError):
    """Survey answers are structurally invalid; raised before any network call."""

    kind = "survey"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class LLMError(PlanGenerationError):
    kind = "llm"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class RetryableLLMError(LLMError):
    """Timeout, transport failure or 5xx; worth another attempt."""


class TerminalLLMError(LLMError):
    """4xx, auth failure, malformed body or exhausted retries."""


class StrategyError(ValueError):
    """One extraction strategy could not recover a JSON object."""


class ExtractionError(PlanGenerationError):
    """No extraction strategy recovered a JSON object from the completion."""

    kind = "extraction"

    def __init__(self, raw_length: int, message: str, failures: list[tuple[str, str]] | None = None) -> None:
        super().__init__(f"Could not extract JSON from {raw_length} chars: {message}")
        self.raw_length = raw_length
        self.message = message
        self.failures = failures or []


class PlanValidationError(PlanGenerationError):
    """The payload parsed but violates the study-plan schema or invariants."""

    kind = "validation"

    def __init__(self, violations: list) -> None:
        super().__init__(f"{len(violations)} plan violation(s)")
        self.violations = list(violations)


class InvalidTransitionError(PlanGenerationError):
    kind = "state"


class ArtifactNameError(PlanGenerationError):
    kind = "artifact"


class ArtifactNotFoundError(PlanGenerationError):
    kind = "artifact"


class PlanNotFoundError(PlanGenerationError):
    kind = "persistence"


class PlanStorageError(PlanGenerationError):
    """The plan repository could not store or read a plan."""

    kind = "persistence"


# Summaries safe to show the client; full diagnostics live in debug artifacts.
USER_MESSAGES: dict[str, str] = {
    "survey": "The survey answers are incomplete. Please review the form and try again.",
    "llm": "The study plan service is unavailable right now. Please try again later.",
    "extraction": "The generated study plan could not be read. Please try again.",
    "validation": "The generated study plan was inconsistent. Please try again.",
    "persistence": "The study plan could not be saved. Please try again.",
    "internal": "Study plan generation failed unexpectedly.",
}


def user_message(kind: str | None) -> str:
    return USER_MESSAGES.get(kind or "internal", USER_MESSAGES["internal"])
