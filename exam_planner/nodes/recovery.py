"""Nodes that run after a failed stage: regenerate, local fallback plan, fail."""

import logging

from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import user_message
from exam_planner.generation.local_plan import generate_local_plan
from exam_planner.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")


def regenerate_node(state: PipelineState) -> dict:
    """Clear the failed output and count one more full regeneration."""
    regenerations = state.get("regenerations", 0) + 1
    logger.warning(
        "Request %s: regenerating after %s failure (%d)",
        state["request_id"],
        state.get("error_kind"),
        regenerations,
    )
    return {
        "regenerations": regenerations,
        "raw_text": None,
        "payload": None,
        "extraction_strategy": None,
        "plan": None,
        "error_kind": None,
        "error_message": None,
    }


def local_plan_node(state: PipelineState) -> dict:
    """Populates: plan, local_plan_used."""
    logger.warning(
        "Request %s: using local plan after %s failure",
        state["request_id"],
        state.get("error_kind"),
    )
    plan = generate_local_plan(
        state["survey_answers"],
        state["days_until_exam"],
        state["plan_days"],
        start_date=state.get("today"),
        learning_materials=state.get("learning_materials"),
    )
    get_artifact_store().write("local_plan", plan.model_dump_json(by_alias=True, exclude_none=True, indent=2))
    return {"plan": plan, "local_plan_used": True, "error_kind": None, "error_message": None}


def fail_node(state: PipelineState) -> dict:
    """Populates: failure_summary (user-safe; diagnostics stay in artifacts/logs)."""
    kind = state.get("error_kind")
    logger.error("Request %s: generation failed (%s): %s", state["request_id"], kind, state.get("error_message"))
    return {"failure_summary": user_message(kind)}
