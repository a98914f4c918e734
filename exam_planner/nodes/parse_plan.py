"""Parse node: raw completion -> JSON object -> validated StudyPlan."""

import json
import logging

from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import ExtractionError, PlanValidationError
from exam_planner.models.state import PipelineState
from exam_planner.utils.llm_parse import extract
from exam_planner.validation.plan_validator import validate_plan

logger = logging.getLogger("uvicorn.error")

# Violations beyond this many are summarised in the error dump.
MAX_REPORTED_VIOLATIONS = 50


def parse_plan_node(state: PipelineState) -> dict:
    """Recover and validate the plan.

    Populates: payload, extraction_strategy, plan. Failures are dumped to an
    ``error`` artifact; the raw text itself is already in the ``response``
    artifact written by the LLM client.
    """
    raw_text = state.get("raw_text") or ""
    try:
        result = extract(raw_text)
    except ExtractionError as exc:
        _dump(
            state,
            stage="extraction",
            rawLength=exc.raw_length,
            message=exc.message,
            failures=[{"strategy": name, "error": error} for name, error in exc.failures],
        )
        return {"payload": None, "plan": None, "error_kind": exc.kind, "error_message": str(exc)}

    try:
        plan = validate_plan(result.payload)
    except PlanValidationError as exc:
        violations = [str(v) for v in exc.violations]
        _dump(
            state,
            stage="validation",
            strategy=result.strategy,
            violationCount=len(violations),
            violations=violations[:MAX_REPORTED_VIOLATIONS],
        )
        return {
            "payload": result.payload,
            "extraction_strategy": result.strategy,
            "plan": None,
            "error_kind": exc.kind,
            "error_message": "; ".join(violations[:5]),
        }

    logger.info(
        "Request %s: plan parsed via '%s' (%d phases, %d days)",
        state["request_id"],
        result.strategy,
        len(plan.phases),
        len(plan.daily_plans),
    )
    return {
        "payload": result.payload,
        "extraction_strategy": result.strategy,
        "plan": plan,
        "error_kind": None,
        "error_message": None,
    }


def _dump(state: PipelineState, **details) -> None:
    dump = {"requestId": state["request_id"], "regenerations": state.get("regenerations", 0), **details}
    get_artifact_store().write("error", json.dumps(dump, ensure_ascii=False, indent=2))
    logger.warning("Request %s: %s failed", state["request_id"], details.get("stage"))
