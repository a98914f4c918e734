"""Conditional edge functions for the pipeline graph."""

import logging

from exam_planner.config import settings
from exam_planner.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")

REGENERABLE_ERRORS = frozenset({"extraction", "validation"})


def route_after_build_prompt(state: PipelineState) -> str:
    """Invalid answers never reach the network."""
    if state.get("error_kind"):
        return "fail"
    return "call_llm"


def route_after_call_llm(state: PipelineState) -> str:
    if state.get("error_kind"):
        return route_on_failure(state)
    return "parse_plan"


def route_after_parse_plan(state: PipelineState) -> str:
    """Regenerate once (bounded by ``max_regenerations``), then fall back or fail.

    Returns one of: 'persist_plan', 'regenerate', 'local_plan', 'fail'.
    """
    kind = state.get("error_kind")
    if not kind:
        return "persist_plan"
    if kind in REGENERABLE_ERRORS and state.get("regenerations", 0) < settings.max_regenerations:
        return "regenerate"
    return route_on_failure(state)


def route_after_persist_plan(state: PipelineState) -> str:
    if state.get("plan_id"):
        return "end"
    return "fail"


def route_on_failure(state: PipelineState) -> str:
    if settings.fallback_to_local_plan and state.get("days_until_exam") and not state.get("local_plan_used"):
        logger.info("route_on_failure: local_plan (%s)", state.get("error_kind"))
        return "local_plan"
    return "fail"
