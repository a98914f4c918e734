"""Persist node: hand the validated plan to the plan repository."""

import logging

from exam_planner.db.repository_factory import get_plan_repository
from exam_planner.errors import PlanStorageError
from exam_planner.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")


def persist_plan_node(state: PipelineState) -> dict:
    """Populates: plan_id."""
    repo = get_plan_repository()
    try:
        plan_id = repo.save(state["plan"], request_id=state["request_id"])
    except PlanStorageError as exc:
        logger.error("Request %s: plan could not be stored: %s", state["request_id"], exc)
        return {"plan_id": None, "error_kind": exc.kind, "error_message": str(exc)}
    logger.info("Request %s: plan stored as %s", state["request_id"], plan_id)
    return {"plan_id": plan_id, "error_kind": None, "error_message": None}
