"""Tests for prompt construction."""

from datetime import date

import pytest

from exam_planner.errors import SurveyValidationError
from exam_planner.llm import prompt_builder
from exam_planner.llm.prompt_builder import build_prompt, days_until_exam

SURVEY = {
    "titleLevel": "junior",
    "examStatus": "first",
    "examYear": 2026,
    "overallLevel": "medium",
    "weekdaysCount": "3-4",
    "weekdayHours": "1-2",
    "weekendHours": "2-4",
}


def test_build_prompt_is_deterministic():
    first = build_prompt(SURVEY, today=date(2026, 3, 14))
    second = build_prompt(dict(SURVEY), today=date(2026, 3, 14))
    assert first.prompt == second.prompt
    assert first == second


def test_build_prompt_describes_learner_and_horizon():
    bundle = build_prompt(SURVEY, today=date(2026, 3, 14))
    assert "Junior Nurse Practitioner" in bundle.prompt
    assert "Days until the exam: 30" in bundle.prompt
    assert "exam date 2026-04-13" in bundle.prompt
    assert bundle.days_until_exam == 30
    assert bundle.plan_days == 30
    assert not bundle.is_long_term
    assert '"monthlyPlan"' not in bundle.prompt


def test_build_prompt_truncates_long_horizons(monkeypatch):
    monkeypatch.setattr(prompt_builder.settings, "max_daily_plan_days", 30)
    bundle = build_prompt(SURVEY, today=date(2026, 1, 1))
    assert bundle.days_until_exam == 102
    assert bundle.plan_days == 30
    assert bundle.is_long_term
    assert '"monthlyPlan"' in bundle.prompt
    assert '"nextSteps"' in bundle.prompt


def test_build_prompt_lists_partial_subjects_with_levels():
    survey = dict(
        SURVEY,
        examStatus="partial",
        subjects={"basic": True, "practical": True},
        subjectLevels={"basic": "low", "practical": "high"},
    )
    bundle = build_prompt(survey, today=date(2026, 3, 14))
    assert "Basic knowledge: limited understanding" in bundle.prompt
    assert "Practical skills: solid understanding" in bundle.prompt
    assert "Professional knowledge" not in bundle.prompt


def test_build_prompt_uses_configured_generation_settings(monkeypatch):
    monkeypatch.setattr(prompt_builder.settings, "llm_model", "test-model")
    monkeypatch.setattr(prompt_builder.settings, "llm_temperature", 0.1)
    monkeypatch.setattr(prompt_builder.settings, "llm_max_tokens", 1234)
    config = build_prompt(SURVEY, today=date(2026, 3, 14)).config
    assert (config.model, config.temperature, config.max_tokens) == ("test-model", 0.1, 1234)


def test_build_prompt_embeds_materials_in_stable_order():
    materials_a = {"examSubjects": [{"name": "Pharmacology"}], "nursingDisciplines": []}
    materials_b = {"nursingDisciplines": [], "examSubjects": [{"name": "Pharmacology"}]}
    a = build_prompt(SURVEY, today=date(2026, 3, 14), learning_materials=materials_a)
    b = build_prompt(SURVEY, today=date(2026, 3, 14), learning_materials=materials_b)
    assert a.prompt == b.prompt
    assert "Pharmacology" in a.prompt


def test_build_prompt_rejects_missing_subject_levels_before_any_call():
    survey = dict(SURVEY, examStatus="partial", subjects={"basic": True})
    with pytest.raises(SurveyValidationError) as excinfo:
        build_prompt(survey, today=date(2026, 3, 14))
    assert excinfo.value.errors


def test_days_until_exam_never_drops_below_one():
    assert days_until_exam(2026, date(2026, 4, 13)) == 1
    assert days_until_exam(2026, date(2026, 5, 1)) == 1
    assert days_until_exam(2026, date(2026, 4, 12)) == 1
    assert days_until_exam(2026, date(2026, 4, 3)) == 10
