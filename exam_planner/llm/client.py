"""Chat-completions client with timeout, sequential retries and debug capture."""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable

import requests

from exam_planner.config import settings
from exam_planner.debug.artifacts import DebugArtifactStore, get_artifact_store
from exam_planner.errors import LLMError, RetryableLLMError, TerminalLLMError
from exam_planner.llm.prompt_builder import GenerationConfig
from exam_planner.llm.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Upper bound on how much of an HTTP error body is kept in diagnostics.
ERROR_BODY_LIMIT = 500


@dataclass(frozen=True)
class RawCompletion:
    text: str
    attempt: int
    latency_ms: int
    http_status: int
    model: str


class LLMClient:
    """Send prompts to an OpenAI-compatible ``/chat/completions`` endpoint.

    Every attempt, successful or not, is written to the debug artifact store
    before this client returns, raises or sleeps.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        policy: RetryPolicy | None = None,
        timeout: float = 120.0,
        artifacts: DebugArtifactStore | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.artifacts = artifacts
        self._session = session or requests.Session()
        self._sleep = sleep
        self._rand = rand

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def complete(self, prompt: str, config: GenerationConfig) -> RawCompletion:
        """Return the raw completion text or raise ``LLMError``.

        Raises
        ------
        TerminalLLMError
            On 4xx/auth failures, malformed bodies, or once the retry budget
            is spent (``attempts`` equals the number of calls made).
        """
        body = {
            "model": config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        attempt = 0
        while True:
            attempt += 1
            logger.info("LLM attempt %d/%d started (model=%s)", attempt, self.policy.max_attempts, config.model)
            started = time.monotonic()
            try:
                completion = self._send(body, attempt, started)
            except LLMError as exc:
                exc.attempts = attempt
                retryable = isinstance(exc, RetryableLLMError)
                self._record_error(exc, attempt, retryable, started, config)
                if self.policy.should_retry(attempt, retryable):
                    delay = self.policy.delay_for(attempt, self._rand())
                    logger.warning(
                        "LLM attempt %d/%d failed (%s); retrying in %.2fs",
                        attempt,
                        self.policy.max_attempts,
                        exc,
                        delay,
                    )
                    self._sleep(delay)
                    continue
                logger.error("LLM call failed after %d attempt(s): %s", attempt, exc)
                if retryable:
                    raise TerminalLLMError(
                        f"LLM call failed after {attempt} attempt(s): {exc}",
                        status_code=exc.status_code,
                        attempts=attempt,
                    ) from exc
                raise
            self._record_response(completion)
            logger.info("LLM attempt %d finished in %d ms", attempt, completion.latency_ms)
            return completion

    def _send(self, body: dict, attempt: int, started: float) -> RawCompletion:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._session.post(self.endpoint, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            message = f"{type(exc).__name__}: {exc}"
            if self.policy.classify(exc):
                raise RetryableLLMError(message) from exc
            raise TerminalLLMError(message) from exc

        status = response.status_code
        if status >= 400:
            detail = (response.text or "")[:ERROR_BODY_LIMIT]
            error_cls = RetryableLLMError if self.policy.classify(status) else TerminalLLMError
            raise error_cls(f"HTTP {status}: {detail}", status_code=status)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise TerminalLLMError("Malformed completion body", status_code=status) from exc
        if not isinstance(content, str) or not content.strip():
            raise TerminalLLMError("Completion content is empty", status_code=status)

        return RawCompletion(
            text=content,
            attempt=attempt,
            latency_ms=_elapsed_ms(started),
            http_status=status,
            model=body["model"],
        )

    def _record_response(self, completion: RawCompletion) -> None:
        if self.artifacts is None:
            return
        self.artifacts.write("response", completion.text)

    def _record_error(
        self,
        exc: LLMError,
        attempt: int,
        retryable: bool,
        started: float,
        config: GenerationConfig,
    ) -> None:
        if self.artifacts is None:
            return
        dump = {
            "stage": "llm",
            "attempt": attempt,
            "maxAttempts": self.policy.max_attempts,
            "retryable": retryable,
            "statusCode": exc.status_code,
            "error": str(exc),
            "errorType": type(exc).__name__,
            "latencyMs": _elapsed_ms(started),
            "model": config.model,
            "endpoint": self.endpoint,
        }
        self.artifacts.write("error", json.dumps(dump, ensure_ascii=False, indent=2))


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def get_llm_client() -> LLMClient:
    """Return an LLMClient configured from settings."""
    return LLMClient(
        settings.llm_base_url,
        settings.llm_api_key,
        policy=RetryPolicy.from_settings(),
        timeout=settings.llm_timeout_seconds,
        artifacts=get_artifact_store(),
    )
