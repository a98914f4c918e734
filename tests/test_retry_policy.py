"""Tests for the LLM backoff policy and failure classification."""

import pytest
import requests

from exam_planner.llm.retry import RetryPolicy, is_retryable_exception, is_retryable_status


def test_delay_doubles_per_attempt_until_capped():
    policy = RetryPolicy(base_delay=1.0, max_delay=20.0, jitter=0.25)
    assert [policy.delay_for(n, rand=0.5) for n in (1, 2, 3, 4, 5, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 20.0]


def test_delay_jitter_stays_within_band():
    policy = RetryPolicy(base_delay=2.0, max_delay=20.0, jitter=0.25)
    assert policy.delay_for(1, rand=0.0) == pytest.approx(1.5)
    assert policy.delay_for(1, rand=0.999999) == pytest.approx(2.5, abs=1e-4)


def test_should_retry_respects_budget_and_classification():
    policy = RetryPolicy(max_attempts=3)
    assert policy.should_retry(1, retryable=True)
    assert policy.should_retry(2, retryable=True)
    assert not policy.should_retry(3, retryable=True)
    assert not policy.should_retry(1, retryable=False)


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"jitter": 1.0}, {"jitter": -0.1}])
def test_policy_rejects_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


@pytest.mark.parametrize(
    "status, expected",
    [(500, True), (502, True), (503, True), (429, True), (400, False), (401, False), (404, False)],
)
def test_status_classification(status, expected):
    assert is_retryable_status(status) is expected


def test_exception_classification():
    assert is_retryable_exception(requests.Timeout())
    assert is_retryable_exception(requests.ConnectionError())
    assert not is_retryable_exception(requests.exceptions.InvalidURL())


def test_classify_accepts_statuses_and_exceptions():
    policy = RetryPolicy()
    assert policy.classify(503)
    assert policy.classify(429)
    assert not policy.classify(401)
    assert policy.classify(requests.Timeout())
    assert not policy.classify(requests.exceptions.InvalidURL())
