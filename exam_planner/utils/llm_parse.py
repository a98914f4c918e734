"""Recover a JSON object from LLM output wrapped in prose or Markdown fences."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from exam_planner.errors import ExtractionError, StrategyError

logger = logging.getLogger(__name__)

_FENCE = "```"
_BRACES_RE = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ExtractionResult:
    payload: dict[str, Any]
    strategy: str


def _loads_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StrategyError(f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise StrategyError(f"top-level JSON value is {type(data).__name__}, expected object")
    return data


def parse_direct(text: str) -> dict[str, Any]:
    """Parse the whole text as JSON."""
    return _loads_object(text.strip())


def parse_fenced(text: str) -> dict[str, Any]:
    """Parse the interior of a code fence that opens the text (```json ... ```)."""
    stripped = text.strip()
    if not stripped.startswith(_FENCE):
        raise StrategyError("text does not start with a code fence")
    first_line_end = stripped.find("\n")
    closing = stripped.rfind(_FENCE)
    if first_line_end == -1 or closing <= first_line_end:
        raise StrategyError("code fence is not closed")
    return _loads_object(stripped[first_line_end + 1 : closing].strip())


def parse_braces(text: str) -> dict[str, Any]:
    """Parse the span from the first '{' to the last '}'."""
    match = _BRACES_RE.search(text)
    if match is None:
        raise StrategyError("no '{' ... '}' span found")
    return _loads_object(match.group(0))


# Ordered by decreasing confidence; the permissive brace scan must stay last
# because it can match unrelated braces in prose.
EXTRACTION_STRATEGIES: tuple[tuple[str, Callable[[str], dict[str, Any]]], ...] = (
    ("direct", parse_direct),
    ("fenced", parse_fenced),
    ("braces", parse_braces),
)


def extract(raw_text: str) -> ExtractionResult:
    """Try each strategy in order and return the first recovered object.

    Raises
    ------
    ExtractionError
        When every strategy fails. Carries the text length and diagnostics,
        never the text itself.
    """
    text = raw_text or ""
    failures: list[tuple[str, str]] = []
    for name, strategy in EXTRACTION_STRATEGIES:
        try:
            payload = strategy(text)
        except StrategyError as exc:
            failures.append((name, str(exc)))
            continue
        if failures:
            logger.info("JSON recovered with '%s' strategy after %d failed strategies", name, len(failures))
        return ExtractionResult(payload=payload, strategy=name)

    first_message = failures[0][1] if failures else "empty completion"
    logger.warning("JSON extraction failed for %d chars: %s", len(text), first_message)
    raise ExtractionError(len(text), first_message, failures)
