"""Prompt node: survey answers -> prompt text + generation config."""

import logging

from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import SurveyValidationError
from exam_planner.llm.prompt_builder import build_prompt
from exam_planner.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")


def build_prompt_node(state: PipelineState) -> dict:
    """Build the prompt and record it as a ``prompt`` artifact.

    Populates: prompt, generation_config, days_until_exam, plan_days.
    """
    try:
        bundle = build_prompt(
            state["survey_answers"],
            today=state["today"],
            learning_materials=state.get("learning_materials"),
        )
    except SurveyValidationError as exc:
        logger.warning("Request %s: survey rejected before LLM call: %s", state["request_id"], exc)
        return {"error_kind": exc.kind, "error_message": f"{exc}: {exc.errors}"}

    get_artifact_store().write("prompt", bundle.prompt)
    logger.info(
        "Request %s: prompt built (%d chars, %d/%d days)",
        state["request_id"],
        len(bundle.prompt),
        bundle.plan_days,
        bundle.days_until_exam,
    )
    return {
        "prompt": bundle.prompt,
        "generation_config": bundle.config,
        "days_until_exam": bundle.days_until_exam,
        "plan_days": bundle.plan_days,
        "error_kind": None,
        "error_message": None,
    }
