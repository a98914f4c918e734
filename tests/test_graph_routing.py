"""Tests for pipeline conditional edges."""

from exam_planner.graph import routing
from exam_planner.graph.routing import (
    route_after_build_prompt,
    route_after_call_llm,
    route_after_parse_plan,
    route_after_persist_plan,
)


def test_build_prompt_failure_skips_the_llm():
    assert route_after_build_prompt({"error_kind": "survey"}) == "fail"
    assert route_after_build_prompt({"error_kind": None}) == "call_llm"


def test_llm_success_goes_to_parse():
    assert route_after_call_llm({"error_kind": None}) == "parse_plan"


def test_llm_failure_fails_without_fallback(monkeypatch):
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", False)
    assert route_after_call_llm({"error_kind": "llm", "days_until_exam": 30}) == "fail"


def test_llm_failure_uses_local_plan_when_enabled(monkeypatch):
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", True)
    assert route_after_call_llm({"error_kind": "llm", "days_until_exam": 30}) == "local_plan"


def test_parse_failure_regenerates_once(monkeypatch):
    monkeypatch.setattr(routing.settings, "max_regenerations", 1)
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", False)
    assert route_after_parse_plan({"error_kind": "extraction", "regenerations": 0}) == "regenerate"
    assert route_after_parse_plan({"error_kind": "validation", "regenerations": 0}) == "regenerate"
    assert route_after_parse_plan({"error_kind": "extraction", "regenerations": 1}) == "fail"


def test_parse_failure_after_budget_falls_back_when_enabled(monkeypatch):
    monkeypatch.setattr(routing.settings, "max_regenerations", 1)
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", True)
    state = {"error_kind": "validation", "regenerations": 1, "days_until_exam": 10}
    assert route_after_parse_plan(state) == "local_plan"


def test_zero_regenerations_disables_regenerate(monkeypatch):
    monkeypatch.setattr(routing.settings, "max_regenerations", 0)
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", False)
    assert route_after_parse_plan({"error_kind": "extraction", "regenerations": 0}) == "fail"


def test_parse_success_goes_to_persist():
    assert route_after_parse_plan({"error_kind": None}) == "persist_plan"


def test_persist_routes_on_plan_id():
    assert route_after_persist_plan({"plan_id": "p1"}) == "end"
    assert route_after_persist_plan({"plan_id": None, "error_kind": "persistence"}) == "fail"


def test_local_plan_is_tried_at_most_once(monkeypatch):
    monkeypatch.setattr(routing.settings, "fallback_to_local_plan", True)
    state = {"error_kind": "llm", "days_until_exam": 30, "local_plan_used": True}
    assert route_after_call_llm(state) == "fail"
