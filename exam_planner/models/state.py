"""LangGraph shared state for the study-plan pipeline."""

from datetime import date
from typing import Any

from typing_extensions import TypedDict

from exam_planner.llm.prompt_builder import GenerationConfig
from exam_planner.schemas.plan import StudyPlan
from exam_planner.schemas.survey import SurveyAnswers


class PipelineState(TypedDict, total=False):
    """State passed between the pipeline nodes.

    Fields
    ------
    request_id : str
        Generation request this run belongs to.
    survey_answers : SurveyAnswers
        Validated survey input.
    today : date
        Day 1 of the plan.
    learning_materials : dict | None
        Optional subjects/chapters offered to the model as resources.
    prompt : str
        Full prompt text (system + user sections).
    generation_config : GenerationConfig
        Model name, temperature and max tokens for the call.
    days_until_exam : int
        Whole preparation horizon in days.
    plan_days : int
        Number of daily plans requested.
    raw_text : str | None
        Latest raw completion.
    payload : dict | None
        JSON object recovered from ``raw_text``.
    extraction_strategy : str | None
        Strategy that recovered ``payload``.
    plan : StudyPlan | None
        Validated plan (LLM or local).
    plan_id : str | None
        Identifier assigned by the repository.
    attempts : int
        LLM HTTP attempts made across all calls.
    regenerations : int
        Full regenerations performed after extraction/validation failures.
    error_kind : str | None
        ``PlanGenerationError.kind`` of the last failure, ``None`` when clear.
    error_message : str | None
        Diagnostic of the last failure (never shown to the client).
    failure_summary : str | None
        User-safe message set by the ``fail`` node.
    local_plan_used : bool
        Whether the stored plan came from the local generator.
    """

    request_id: str
    survey_answers: SurveyAnswers
    today: date
    learning_materials: dict[str, Any] | None
    prompt: str
    generation_config: GenerationConfig
    days_until_exam: int
    plan_days: int
    raw_text: str | None
    payload: dict[str, Any] | None
    extraction_strategy: str | None
    plan: StudyPlan | None
    plan_id: str | None
    attempts: int
    regenerations: int
    error_kind: str | None
    error_message: str | None
    failure_summary: str | None
    local_plan_used: bool


def initial_state(
    request_id: str,
    survey_answers: SurveyAnswers,
    today: date,
    learning_materials: dict[str, Any] | None = None,
) -> PipelineState:
    return {
        "request_id": request_id,
        "survey_answers": survey_answers,
        "today": today,
        "learning_materials": learning_materials,
        "raw_text": None,
        "payload": None,
        "extraction_strategy": None,
        "plan": None,
        "plan_id": None,
        "attempts": 0,
        "regenerations": 0,
        "error_kind": None,
        "error_message": None,
        "failure_summary": None,
        "local_plan_used": False,
    }
