"""Schemas for generation requests and the client-facing status surface."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from exam_planner.schemas.materials import LearningMaterials
from exam_planner.schemas.survey import SurveyAnswers

GenerationStatus = Literal["idle", "generating", "success", "error"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"success", "error"})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerationRequest(_CamelModel):
    """Persisted snapshot of one submission attempt.

    Fields
    ------
    id : str
        Request identifier handed to the client.
    survey_answers : SurveyAnswers | None
        Answers the generation was started with.
    status : GenerationStatus
        ``idle -> generating -> success | error``.
    progress : int
        Client-visible estimate, 0-100.
    start_time : float | None
        Epoch seconds when ``generating`` was entered.
    error_message : str | None
        User-safe summary once ``error`` is reached.
    plan_id : str | None
        Persisted plan identifier once ``success`` is reached.
    finished_at : float | None
        Epoch seconds when a terminal status was reached.
    """

    id: str
    survey_answers: SurveyAnswers | None = None
    created_at: datetime
    status: GenerationStatus = "idle"
    progress: int = 0
    start_time: float | None = None
    error_message: str | None = None
    plan_id: str | None = None
    finished_at: float | None = None


class GenerationStatusView(_CamelModel):
    """What the client polls: ``{status, progress, planId?, error?}``."""

    status: GenerationStatus
    progress: int
    plan_id: str | None = None
    error: str | None = None


class GenerateRequest(BaseModel):
    """Incoming POST body: the raw survey form plus optional learning materials."""

    model_config = ConfigDict(populate_by_name=True)

    survey: dict
    learning_materials: LearningMaterials | None = Field(default=None, alias="learningMaterials")


class GenerateAccepted(_CamelModel):
    request_id: str
    status: GenerationStatus
    progress: int
    estimated_time_ms: int
