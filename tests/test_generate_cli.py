"""Tests for the submit-and-poll command-line client."""

import json

from exam_planner.cli import generate_cli


class FakeResponse:
    def __init__(self, status_code, data):
        self.status_code = status_code
        self._data = data
        self.text = json.dumps(data)

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(self.status_code)


def test_cli_submits_polls_and_prints_plan(monkeypatch, tmp_path, capsys):
    survey_path = tmp_path / "survey.json"
    survey_path.write_text(json.dumps({"titleLevel": "junior"}))
    posted = []
    statuses = [
        {"status": "generating", "progress": 40},
        {"status": "success", "progress": 100, "planId": "p1"},
    ]

    def fake_post(url, json=None, timeout=None):
        posted.append((url, json))
        return FakeResponse(202, {"requestId": "r1", "status": "generating", "progress": 0, "estimatedTimeMs": 180000})

    def fake_get(url, timeout=None):
        if url.endswith("/study-plans/generate/r1"):
            return FakeResponse(200, statuses.pop(0))
        assert url.endswith("/study-plans/p1")
        return FakeResponse(200, {"overview": "Plan"})

    monkeypatch.setattr(generate_cli.requests, "post", fake_post)
    monkeypatch.setattr(generate_cli.requests, "get", fake_get)
    monkeypatch.setattr(generate_cli.time, "sleep", lambda _s: None)

    code = generate_cli.main([str(survey_path), "--url", "http://svc/"])

    assert code == 0
    assert posted == [("http://svc/study-plans/generate", {"survey": {"titleLevel": "junior"}})]
    assert '"overview": "Plan"' in capsys.readouterr().out


def test_cli_reports_generation_errors(monkeypatch, tmp_path, capsys):
    survey_path = tmp_path / "survey.json"
    survey_path.write_text("{}")
    monkeypatch.setattr(
        generate_cli.requests,
        "post",
        lambda url, json=None, timeout=None: FakeResponse(202, {"requestId": "r2", "estimatedTimeMs": 1000}),
    )
    monkeypatch.setattr(
        generate_cli.requests,
        "get",
        lambda url, timeout=None: FakeResponse(200, {"status": "error", "progress": 10, "error": "Try again"}),
    )

    assert generate_cli.main([str(survey_path)]) == 1
    assert "Try again" in capsys.readouterr().err


def test_cli_surfaces_rejected_survey(monkeypatch, tmp_path, capsys):
    survey_path = tmp_path / "survey.json"
    survey_path.write_text("{}")
    monkeypatch.setattr(
        generate_cli.requests,
        "post",
        lambda url, json=None, timeout=None: FakeResponse(422, {"detail": "bad survey"}),
    )

    assert generate_cli.main([str(survey_path)]) == 1
    assert "Error 422" in capsys.readouterr().err
