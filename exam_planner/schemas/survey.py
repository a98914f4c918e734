"""Survey answers submitted by the client form."""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from exam_planner.errors import SurveyValidationError

SUBJECT_KEYS = ("basic", "related", "professional", "practical")

SubjectLevel = Literal["low", "medium", "high"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SubjectFlags(_CamelModel):
    basic: bool = False
    related: bool = False
    professional: bool = False
    practical: bool = False

    def selected(self) -> list[str]:
        return [key for key in SUBJECT_KEYS if getattr(self, key)]


class SubjectLevels(_CamelModel):
    basic: SubjectLevel | None = None
    related: SubjectLevel | None = None
    professional: SubjectLevel | None = None
    practical: SubjectLevel | None = None


class SurveyAnswers(_CamelModel):
    """Immutable survey input; never mutated after submission."""

    title_level: Literal["junior", "mid", "other"]
    other_title_level: str = ""
    exam_status: Literal["first", "partial"]
    exam_year: int = Field(ge=2000, le=2100)
    subjects: SubjectFlags = SubjectFlags()
    overall_level: Literal["weak", "medium", "strong"]
    subject_levels: SubjectLevels = SubjectLevels()
    weekdays_count: Literal["1-2", "3-4", "5"]
    weekday_hours: Literal["<1", "1-2", "2-3", "3+"]
    weekend_hours: Literal["<2", "2-4", "4-6", "6+"]

    @model_validator(mode="after")
    def _check_conditional_fields(self) -> "SurveyAnswers":
        if self.title_level == "other" and not self.other_title_level.strip():
            raise ValueError("otherTitleLevel is required when titleLevel is 'other'")
        if self.exam_status == "partial":
            selected = self.subjects.selected()
            if not selected:
                raise ValueError("at least one subject must be selected when examStatus is 'partial'")
            missing = [key for key in selected if getattr(self.subject_levels, key) is None]
            if missing:
                raise ValueError(f"subjectLevels missing for selected subject(s): {', '.join(missing)}")
        return self


def parse_survey(data: SurveyAnswers | Mapping[str, Any]) -> SurveyAnswers:
    """Return validated ``SurveyAnswers`` or raise ``SurveyValidationError``."""
    if isinstance(data, SurveyAnswers):
        return data
    try:
        return SurveyAnswers.model_validate(dict(data))
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]) or "survey", "message": err["msg"]}
            for err in exc.errors()
        ]
        raise SurveyValidationError("Invalid survey answers", errors) from exc
    except (TypeError, ValueError) as exc:
        raise SurveyValidationError("Survey answers must be an object") from exc
