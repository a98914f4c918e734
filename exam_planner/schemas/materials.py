"""Schemas for the optional learning materials sent with a survey."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from exam_planner.errors import SurveyValidationError


class _MaterialsModel(BaseModel):
    # Unknown keys are kept so the prompt can still show them to the model.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ExamSubject(_MaterialsModel):
    name: str = Field(min_length=1)


class MaterialChapter(_MaterialsModel):
    name: str = Field(min_length=1)


class NursingDiscipline(_MaterialsModel):
    name: str = "Nursing"
    chapters: list[MaterialChapter] = Field(default_factory=list)


class LearningMaterials(_MaterialsModel):
    exam_subjects: list[ExamSubject] = Field(default_factory=list)
    nursing_disciplines: list[NursingDiscipline] = Field(default_factory=list)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_learning_materials(data: LearningMaterials | Mapping[str, Any] | None) -> LearningMaterials | None:
    """Return validated materials, ``None`` when absent, or raise ``SurveyValidationError``."""
    if data is None or isinstance(data, LearningMaterials):
        return data
    try:
        return LearningMaterials.model_validate(dict(data))
    except ValidationError as exc:
        errors = [
            {
                "field": ".".join(["learningMaterials", *(str(part) for part in err["loc"])]),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        raise SurveyValidationError("Invalid learning materials", errors) from exc
    except (TypeError, ValueError) as exc:
        raise SurveyValidationError("Learning materials must be an object") from exc
