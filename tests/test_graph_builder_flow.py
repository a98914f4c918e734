"""Integration-style tests for the compiled pipeline graph."""

from datetime import date

from exam_planner.graph import builder, routing
from exam_planner.models.state import initial_state
from exam_planner.schemas.survey import parse_survey

ANSWERS = parse_survey(
    {
        "titleLevel": "junior",
        "examStatus": "first",
        "examYear": 2026,
        "overallLevel": "medium",
        "weekdaysCount": "3-4",
        "weekdayHours": "1-2",
        "weekendHours": "2-4",
    }
)


def _state():
    return initial_state("req", ANSWERS, date(2026, 3, 14))


def _prompt_node(_state):
    return {"prompt": "P", "generation_config": None, "days_until_exam": 30, "plan_days": 30, "error_kind": None}


def test_happy_path_reaches_persist(monkeypatch):
    visited = []
    monkeypatch.setattr(builder, "build_prompt_node", _prompt_node)
    monkeypatch.setattr(builder, "call_llm_node", lambda _s: visited.append("llm") or {"raw_text": "{}", "error_kind": None})
    monkeypatch.setattr(builder, "parse_plan_node", lambda _s: visited.append("parse") or {"plan": "PLAN", "error_kind": None})
    monkeypatch.setattr(builder, "persist_plan_node", lambda _s: visited.append("persist") or {"plan_id": "p1"})

    result = builder.build_graph().invoke(_state())

    assert visited == ["llm", "parse", "persist"]
    assert result["plan_id"] == "p1"
    assert result["failure_summary"] is None


def test_parse_failures_regenerate_once_then_fail(monkeypatch):
    calls = {"llm": 0}
    monkeypatch.setattr(routing.settings, "max_regenerations", 1)
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", False)
    monkeypatch.setattr(builder, "build_prompt_node", _prompt_node)

    def _llm(_state):
        calls["llm"] += 1
        return {"raw_text": "nonsense", "error_kind": None}

    monkeypatch.setattr(builder, "call_llm_node", _llm)
    monkeypatch.setattr(builder, "parse_plan_node", lambda _s: {"error_kind": "extraction", "error_message": "bad"})

    result = builder.build_graph().invoke(_state())

    assert calls["llm"] == 2
    assert result["regenerations"] == 1
    assert result["plan_id"] is None
    assert result["failure_summary"] == "The generated study plan could not be read. Please try again."


def test_survey_failure_never_calls_llm(monkeypatch):
    called = []
    monkeypatch.setattr(builder, "build_prompt_node", lambda _s: {"error_kind": "survey", "error_message": "bad"})
    monkeypatch.setattr(builder, "call_llm_node", lambda _s: called.append(1) or {})

    result = builder.build_graph().invoke(_state())

    assert called == []
    assert "survey answers" in result["failure_summary"]


def test_llm_failure_with_fallback_persists_local_plan(monkeypatch):
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", True)
    monkeypatch.setattr(builder, "build_prompt_node", _prompt_node)
    monkeypatch.setattr(builder, "call_llm_node", lambda _s: {"error_kind": "llm", "error_message": "down"})
    monkeypatch.setattr(builder, "local_plan_node", lambda _s: {"plan": "LOCAL", "local_plan_used": True, "error_kind": None})
    monkeypatch.setattr(builder, "persist_plan_node", lambda state: {"plan_id": f"id-{state['plan']}"})

    result = builder.build_graph().invoke(_state())

    assert result["plan_id"] == "id-LOCAL"
    assert result["local_plan_used"] is True
