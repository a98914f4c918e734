"""Backoff policy and failure classification for LLM transport calls."""

from __future__ import annotations

import random
from dataclasses import dataclass

import requests

from exam_planner.config import settings

RETRYABLE_STATUS_CODES = frozenset({429})


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are worth retrying; every other 4xx is terminal."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


def is_retryable_exception(exc: BaseException) -> bool:
    """Timeouts and connection resets are retryable; other request errors are not."""
    return isinstance(exc, (requests.Timeout, requests.ConnectionError))


@dataclass(frozen=True)
class RetryPolicy:
    """Sequential retry budget with jittered exponential backoff.

    ``delay_for`` is a pure function of the attempt number and a random value
    in ``[0, 1)``, so the schedule can be unit-tested without sleeping.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 20.0
    jitter: float = 0.25

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.llm_max_attempts,
            base_delay=settings.llm_backoff_base_seconds,
            max_delay=settings.llm_backoff_max_seconds,
            jitter=settings.llm_backoff_jitter,
        )

    def delay_for(self, attempt: int, rand: float | None = None) -> float:
        """Delay to wait after failed ``attempt`` (1-based) before the next one."""
        if rand is None:
            rand = random.random()
        base = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        factor = 1 - self.jitter + 2 * self.jitter * rand
        return max(0.0, base * factor)

    def should_retry(self, attempt: int, retryable: bool) -> bool:
        return retryable and attempt < self.max_attempts

    def classify(self, failure: int | BaseException) -> bool:
        """``True`` when an HTTP status or transport exception is retryable."""
        if isinstance(failure, BaseException):
            return is_retryable_exception(failure)
        return is_retryable_status(failure)
