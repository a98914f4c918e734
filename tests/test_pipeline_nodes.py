"""Tests for individual pipeline nodes."""

import json
from datetime import date

from exam_planner.debug.artifacts import DebugArtifactStore, InMemoryStorage
from exam_planner.errors import PlanStorageError, RetryableLLMError, TerminalLLMError
from exam_planner.llm.client import RawCompletion
from exam_planner.llm.prompt_builder import GenerationConfig
from exam_planner.nodes import build_prompt, call_llm, parse_plan, persist_plan, recovery
from exam_planner.schemas.plan import StudyPlan
from exam_planner.schemas.survey import parse_survey

SURVEY = {
    "titleLevel": "junior",
    "examStatus": "first",
    "examYear": 2026,
    "overallLevel": "medium",
    "weekdaysCount": "3-4",
    "weekdayHours": "1-2",
    "weekendHours": "2-4",
}
CONFIG = GenerationConfig(model="m", temperature=0.3, max_tokens=10)


def _store(monkeypatch, module):
    store = DebugArtifactStore(InMemoryStorage())
    monkeypatch.setattr(module, "get_artifact_store", lambda: store)
    return store


def test_build_prompt_node_records_prompt(monkeypatch):
    store = _store(monkeypatch, build_prompt)
    state = {"request_id": "r", "survey_answers": parse_survey(SURVEY), "today": date(2026, 3, 14)}

    result = build_prompt.build_prompt_node(state)

    assert result["error_kind"] is None
    assert result["days_until_exam"] == 30
    [artifact] = store.list()
    assert artifact.kind == "prompt"
    assert store.read(artifact.filename) == result["prompt"]


def test_build_prompt_node_reports_invalid_survey(monkeypatch):
    store = _store(monkeypatch, build_prompt)
    state = {"request_id": "r", "survey_answers": {**SURVEY, "examYear": "soon"}, "today": date(2026, 3, 14)}

    result = build_prompt.build_prompt_node(state)

    assert result["error_kind"] == "survey"
    assert store.list() == []


def test_call_llm_node_accumulates_attempts(monkeypatch):
    class FakeClient:
        def complete(self, prompt, config):
            return RawCompletion(text="{}", attempt=2, latency_ms=1, http_status=200, model="m")

    monkeypatch.setattr(call_llm, "get_llm_client", lambda: FakeClient())
    result = call_llm.call_llm_node({"request_id": "r", "prompt": "p", "generation_config": CONFIG, "attempts": 3})

    assert result == {"raw_text": "{}", "attempts": 5, "error_kind": None, "error_message": None}


def test_call_llm_node_turns_client_errors_into_state(monkeypatch):
    class FailingClient:
        def complete(self, prompt, config):
            raise TerminalLLMError("gave up", attempts=3)

    monkeypatch.setattr(call_llm, "get_llm_client", lambda: FailingClient())
    result = call_llm.call_llm_node({"request_id": "r", "prompt": "p", "generation_config": CONFIG})

    assert result["error_kind"] == "llm"
    assert result["attempts"] == 3
    assert result["raw_text"] is None


def test_retryable_and_terminal_errors_share_a_kind():
    assert RetryableLLMError("x").kind == TerminalLLMError("x").kind == "llm"


def test_parse_plan_node_dumps_extraction_failure(monkeypatch):
    store = _store(monkeypatch, parse_plan)
    result = parse_plan.parse_plan_node({"request_id": "r", "raw_text": "sorry, no plan", "regenerations": 1})

    assert result["error_kind"] == "extraction"
    dump = json.loads(store.read(store.list()[0].filename))
    assert dump["stage"] == "extraction"
    assert dump["rawLength"] == len("sorry, no plan")
    assert dump["regenerations"] == 1
    assert [f["strategy"] for f in dump["failures"]] == ["direct", "fenced", "braces"]


def test_parse_plan_node_dumps_validation_failure(monkeypatch):
    store = _store(monkeypatch, parse_plan)
    raw = json.dumps({"overview": "x", "phases": [], "dailyPlans": []})

    result = parse_plan.parse_plan_node({"request_id": "r", "raw_text": raw})

    assert result["error_kind"] == "validation"
    assert result["extraction_strategy"] == "direct"
    dump = json.loads(store.read(store.list()[0].filename))
    assert dump["stage"] == "validation"
    assert dump["violationCount"] == 2


def test_parse_plan_node_returns_validated_plan(monkeypatch):
    store = _store(monkeypatch, parse_plan)
    raw = "```json\n" + json.dumps(
        {
            "overview": "x",
            "phases": [{"id": 1, "name": "A", "startDay": 1, "endDay": 1}],
            "dailyPlans": [{"day": 1, "phaseId": 1, "title": "D1"}],
        }
    ) + "\n```"

    result = parse_plan.parse_plan_node({"request_id": "r", "raw_text": raw})

    assert isinstance(result["plan"], StudyPlan)
    assert result["extraction_strategy"] == "fenced"
    assert store.list() == []


def test_persist_plan_node_reports_storage_failure(monkeypatch):
    class BrokenRepo:
        def save(self, plan, *, request_id):
            raise PlanStorageError("OperationalError: server gone")

    monkeypatch.setattr(persist_plan, "get_plan_repository", lambda: BrokenRepo())
    result = persist_plan.persist_plan_node({"request_id": "r", "plan": object()})

    assert result == {
        "plan_id": None,
        "error_kind": "persistence",
        "error_message": "OperationalError: server gone",
    }


def test_regenerate_node_clears_failure_and_counts():
    result = recovery.regenerate_node(
        {"request_id": "r", "regenerations": 0, "error_kind": "validation", "raw_text": "x"}
    )
    assert result["regenerations"] == 1
    assert result["error_kind"] is None
    assert result["raw_text"] is None


def test_local_plan_node_records_artifact(monkeypatch):
    store = _store(monkeypatch, recovery)
    state = {
        "request_id": "r",
        "survey_answers": parse_survey(SURVEY),
        "today": date(2026, 3, 14),
        "days_until_exam": 30,
        "plan_days": 30,
        "error_kind": "llm",
    }

    result = recovery.local_plan_node(state)

    assert result["local_plan_used"] is True
    [artifact] = store.list()
    assert artifact.kind == "local_plan"
    assert json.loads(store.read(artifact.filename))["overview"] == result["plan"].overview


def test_fail_node_maps_kind_to_user_message():
    assert recovery.fail_node({"request_id": "r", "error_kind": "llm"})["failure_summary"].startswith(
        "The study plan service is unavailable"
    )
    assert recovery.fail_node({"request_id": "r", "error_kind": "weird"})["failure_summary"] == (
        "Study plan generation failed unexpectedly."
    )
