"""Schemas for the validated study plan."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _PlanModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(_PlanModel):
    title: str
    description: str = ""
    duration_minutes: int = Field(
        gt=0,
        validation_alias=AliasChoices("durationMinutes", "duration", "duration_minutes"),
        serialization_alias="durationMinutes",
    )
    resources: list[str] = Field(default_factory=list)


class Phase(_PlanModel):
    id: int
    name: str
    description: str = ""
    start_day: int = Field(ge=1)
    end_day: int = Field(ge=1)
    focus_areas: list[str] = Field(default_factory=list)
    learning_goals: list[str] = Field(default_factory=list)
    recommended_resources: list[str] = Field(default_factory=list)
    monthly_plan: str | None = None


class DailyPlan(_PlanModel):
    day: int = Field(ge=1)
    date: str | None = None
    phase_id: int
    title: str
    subjects: list[str] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    review_tips: str = ""


class StudyPlan(_PlanModel):
    overview: str
    phases: list[Phase] = Field(default_factory=list)
    daily_plans: list[DailyPlan] = Field(default_factory=list)
    next_steps: str | None = None

    def to_payload(self) -> dict:
        """camelCase JSON-ready dict, the persisted plan record shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
