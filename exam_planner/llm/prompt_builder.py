"""Turn validated survey answers into a deterministic prompt plus generation config."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from exam_planner.config import settings
from exam_planner.prompts.study_plan import (
    FULL_PLAN_SCOPE,
    LONG_TERM_PLAN_SCOPE,
    MATERIALS_SECTION,
    STUDY_PLAN_SYSTEM_PROMPT,
    STUDY_PLAN_USER_PROMPT,
)
from exam_planner.schemas.survey import SUBJECT_KEYS, SurveyAnswers, parse_survey

EXAM_MONTH = 4
EXAM_DAY = 13

TITLE_LEVELS = {"junior": "Junior Nurse Practitioner", "mid": "Nurse-in-Charge"}

EXAM_STATUSES = {
    "first": "First attempt",
    "partial": "Some subjects already passed",
}

OVERALL_LEVELS = {
    "weak": "Weak foundation, needs to start from scratch",
    "medium": "Some foundation, parts need strengthening",
    "strong": "Solid foundation, needs systematic review",
}

SUBJECT_LEVELS = {
    "low": "limited understanding (*)",
    "medium": "general understanding (**)",
    "high": "solid understanding (***)",
}

SUBJECT_NAMES = {
    "basic": "Basic knowledge",
    "related": "Related professional knowledge",
    "professional": "Professional knowledge",
    "practical": "Practical skills",
}

WEEKDAYS_COUNT = {"1-2": "1-2 days per week", "3-4": "3-4 days per week", "5": "5 days per week"}

WEEKDAY_HOURS = {
    "<1": "Weekdays: less than 1 hour per day",
    "1-2": "Weekdays: 1-2 hours per day",
    "2-3": "Weekdays: 2-3 hours per day",
    "3+": "Weekdays: more than 3 hours per day",
}

WEEKEND_HOURS = {
    "<2": "Weekends: less than 2 hours per day",
    "2-4": "Weekends: 2-4 hours per day",
    "4-6": "Weekends: 4-6 hours per day",
    "6+": "Weekends: more than 6 hours per day",
}


@dataclass(frozen=True)
class GenerationConfig:
    model: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class PromptBundle:
    prompt: str
    config: GenerationConfig
    days_until_exam: int
    plan_days: int

    @property
    def is_long_term(self) -> bool:
        return self.plan_days < self.days_until_exam


def exam_date_for(exam_year: int) -> date:
    return date(exam_year, EXAM_MONTH, EXAM_DAY)


def days_until_exam(exam_year: int, today: date) -> int:
    return max(1, (exam_date_for(exam_year) - today).days)


def generation_config() -> GenerationConfig:
    return GenerationConfig(
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )


def describe_title(answers: SurveyAnswers) -> str:
    if answers.title_level == "other":
        return answers.other_title_level.strip()
    return TITLE_LEVELS[answers.title_level]


def describe_study_base(answers: SurveyAnswers) -> str:
    if answers.exam_status == "first":
        return OVERALL_LEVELS[answers.overall_level]
    lines = ["Selected subjects:"]
    for key in SUBJECT_KEYS:
        if getattr(answers.subjects, key):
            level = getattr(answers.subject_levels, key)
            lines.append(f"    - {SUBJECT_NAMES[key]}: {SUBJECT_LEVELS[level]}")
    return "\n".join(lines)


def build_prompt(
    answers: SurveyAnswers | Mapping[str, Any],
    *,
    today: date,
    learning_materials: Mapping[str, Any] | None = None,
) -> PromptBundle:
    """Build the study-plan prompt.

    Pure: no I/O, and identical input always yields an identical prompt.

    Parameters
    ----------
    answers : SurveyAnswers | Mapping
        Survey answers; raw mappings are validated first.
    today : date
        First day of the plan. Passed explicitly to keep the output deterministic.
    learning_materials : Mapping, optional
        Subjects/chapters the model should cite as resources.

    Raises
    ------
    SurveyValidationError
        If the answers are structurally invalid.
    """
    answers = parse_survey(answers)
    total_days = days_until_exam(answers.exam_year, today)
    plan_days = min(total_days, settings.max_daily_plan_days)

    if plan_days < total_days:
        scope = LONG_TERM_PLAN_SCOPE.format(days_until_exam=total_days, plan_days=plan_days)
    else:
        scope = FULL_PLAN_SCOPE.format(days_until_exam=total_days)

    materials = ""
    if learning_materials:
        materials = MATERIALS_SECTION.format(
            materials_json=json.dumps(learning_materials, ensure_ascii=False, indent=2, sort_keys=True)
        )

    user_prompt = STUDY_PLAN_USER_PROMPT.format(
        title_level=describe_title(answers),
        exam_status=EXAM_STATUSES[answers.exam_status],
        study_base=describe_study_base(answers),
        weekdays_count=WEEKDAYS_COUNT[answers.weekdays_count],
        weekday_hours=WEEKDAY_HOURS[answers.weekday_hours],
        weekend_hours=WEEKEND_HOURS[answers.weekend_hours],
        days_until_exam=total_days,
        exam_date=exam_date_for(answers.exam_year).isoformat(),
        start_date=today.isoformat(),
        scope=scope,
        materials=materials,
    )
    return PromptBundle(
        prompt=STUDY_PLAN_SYSTEM_PROMPT + "\n\n" + user_prompt,
        config=generation_config(),
        days_until_exam=total_days,
        plan_days=plan_days,
    )
