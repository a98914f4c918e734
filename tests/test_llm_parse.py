"""Tests for JSON recovery from raw LLM output."""

import json

import pytest

from exam_planner.errors import ExtractionError
from exam_planner.utils import llm_parse
from exam_planner.utils.llm_parse import extract
from exam_planner.validation.plan_validator import validate_plan

FENCED_PLAN = """```json
{
  "overview": "Thirty days of focused preparation.",
  "phases": [
    {"id": 1, "name": "Foundation", "startDay": 1, "endDay": 30,
     "focusAreas": ["Basics"], "learningGoals": ["Framework"], "recommendedResources": ["Textbook"]}
  ],
  "dailyPlans": [
    {"day": 1, "phaseId": 1, "title": "Day 1", "subjects": ["Basics"],
     "tasks": [{"title": "Read chapter 1", "durationMinutes": 60}]}
  ]
}
```"""


def test_valid_json_uses_direct_strategy_without_trying_others(monkeypatch):
    calls = []

    def _spy(name, fn):
        def wrapper(text):
            calls.append(name)
            return fn(text)

        return wrapper

    monkeypatch.setattr(
        llm_parse,
        "EXTRACTION_STRATEGIES",
        tuple((name, _spy(name, fn)) for name, fn in llm_parse.EXTRACTION_STRATEGIES),
    )
    result = extract('{"overview":"x","phases":[],"dailyPlans":[]}')

    assert result.strategy == "direct"
    assert result.payload == {"overview": "x", "phases": [], "dailyPlans": []}
    assert calls == ["direct"]


def test_direct_json_containing_fence_text_is_not_unwrapped():
    result = extract('{"overview": "wrap code in ``` fences", "phases": [], "dailyPlans": []}')
    assert result.strategy == "direct"
    assert result.payload["overview"] == "wrap code in ``` fences"


def test_markdown_fence_is_unwrapped_into_a_plan():
    result = extract(FENCED_PLAN)
    plan = validate_plan(result.payload)

    assert result.strategy == "fenced"
    assert len(plan.phases) == 1
    assert (plan.phases[0].start_day, plan.phases[0].end_day) == (1, 30)
    assert len(plan.daily_plans) == 1
    assert plan.daily_plans[0].phase_id == 1


def test_fence_without_language_tag_is_unwrapped():
    result = extract('```\n{"overview": "x"}\n```')
    assert result.strategy == "fenced"
    assert result.payload == {"overview": "x"}


def test_prose_around_object_falls_back_to_brace_scan():
    raw = 'Sure! Here is your plan:\n{"overview": "x", "phases": []}\nGood luck with the exam.'
    result = extract(raw)
    assert result.strategy == "braces"
    assert result.payload == {"overview": "x", "phases": []}


def test_prose_without_braces_raises_extraction_error():
    raw = "I'm sorry, I cannot produce a study plan right now."
    with pytest.raises(ExtractionError) as excinfo:
        extract(raw)

    err = excinfo.value
    assert err.kind == "extraction"
    assert err.raw_length == len(raw)
    assert [name for name, _ in err.failures] == ["direct", "fenced", "braces"]
    assert raw not in str(err)


@pytest.mark.parametrize("raw", ["", "[1, 2, 3]", '"just a string"', "```json\n{broken\n```", "{not json}"])
def test_unrecoverable_inputs_raise_extraction_error(raw):
    with pytest.raises(ExtractionError):
        extract(raw)


def test_extraction_is_idempotent_on_its_own_output():
    first = extract(FENCED_PLAN).payload
    second = extract(json.dumps(first)).payload
    assert second == first
