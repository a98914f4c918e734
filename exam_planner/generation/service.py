"""Runs one generation request end to end as an independent unit of work."""

from __future__ import annotations

import json
import logging
import threading
import time
import traceback
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, Mapping

from exam_planner.config import settings
from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import InvalidTransitionError, user_message
from exam_planner.generation.progress import ProgressTicker
from exam_planner.generation.snapshots import SnapshotStore, get_snapshot_store
from exam_planner.generation.state_machine import GenerationStateMachine
from exam_planner.graph.builder import build_graph
from exam_planner.models.state import PipelineState, initial_state
from exam_planner.schemas.generation import GenerationRequest, GenerationStatusView
from exam_planner.schemas.materials import parse_learning_materials
from exam_planner.schemas.survey import SurveyAnswers, parse_survey

logger = logging.getLogger("uvicorn.error")

# Progress floor reached once each node finishes.
STAGE_PROGRESS = {
    "build_prompt": 5,
    "call_llm": 70,
    "parse_plan": 85,
    "local_plan": 85,
    "persist_plan": 95,
}

# Slack on top of the worst-case LLM time before a loaded request counts as stranded.
STRANDED_GRACE_SECONDS = 60.0

# Minimum gap between two snapshot cleanup sweeps.
CLEANUP_INTERVAL_SECONDS = 15 * 60


def generation_budget_seconds() -> float:
    """Longest a healthy run can stay in ``generating``.

    Every LLM call may use all its attempts, each up to the request timeout
    plus the longest backoff, once per allowed regeneration.
    """
    attempts = settings.llm_max_attempts
    backoff = settings.llm_backoff_max_seconds * (1 + settings.llm_backoff_jitter)
    per_call = attempts * settings.llm_timeout_seconds + (attempts - 1) * backoff
    return per_call * (1 + settings.max_regenerations) + STRANDED_GRACE_SECONDS


class GenerationService:
    """Owns the worker pool and the live state machines.

    Status reads fall back to the snapshot store, so a request submitted
    before a reload is still visible afterwards.
    """

    def __init__(
        self,
        *,
        graph=None,
        snapshots: SnapshotStore | None = None,
        executor: ThreadPoolExecutor | None = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.graph = graph if graph is not None else build_graph()
        self.snapshots = snapshots or get_snapshot_store()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.generation_workers,
            thread_name_prefix="generation",
        )
        self._today = today
        self._clock = clock
        self._last_cleanup: float | None = None
        self._active: dict[str, GenerationStateMachine] = {}
        self._active_lock = threading.Lock()

    def submit(
        self,
        survey_answers: SurveyAnswers | Mapping[str, Any],
        *,
        learning_materials: Mapping[str, Any] | None = None,
    ) -> GenerationRequest:
        """Validate the answers, enter ``generating`` and schedule the run.

        Raises
        ------
        SurveyValidationError
            Before any state is created when the answers or the learning
            materials are invalid.
        """
        answers = parse_survey(survey_answers)
        materials = parse_learning_materials(learning_materials)
        self.cleanup_snapshots()
        machine = GenerationStateMachine(uuid.uuid4().hex, self.snapshots, self._clock)
        machine.start_generation(answers)
        self._register(machine)
        accepted = machine.snapshot()
        self._executor.submit(
            self.run,
            machine.request_id,
            answers,
            learning_materials=materials.to_payload() if materials else None,
        )
        logger.info("Generation %s submitted", machine.request_id)
        return accepted

    def run(
        self,
        request_id: str,
        survey_answers: SurveyAnswers,
        *,
        today: date | None = None,
        learning_materials: Mapping[str, Any] | None = None,
    ) -> GenerationRequest:
        """Run the pipeline for ``request_id`` and leave it in a terminal state.

        Returns the final snapshot. A request reset before or while running
        keeps its reset state; any finished result is discarded.
        """
        machine = self._machine(request_id)
        if machine is None:
            machine = GenerationStateMachine(request_id, self.snapshots, self._clock)
            self._register(machine)
            machine.start_generation(survey_answers)
        elif machine.status != "generating":
            logger.warning("Generation %s is '%s'; skipping run", request_id, machine.status)
            with self._active_lock:
                self._active.pop(request_id, None)
            return machine.snapshot()

        state = initial_state(
            request_id,
            survey_answers,
            today or self._today(),
            dict(learning_materials) if learning_materials else None,
        )
        ticker = ProgressTicker(machine).start()
        final: PipelineState | None = None
        try:
            final = self._stream(machine, state)
        except Exception as exc:
            logger.exception("Generation %s crashed", request_id)
            self._record_crash(request_id, exc)
        finally:
            ticker.stop()

        try:
            if final is not None and final.get("plan_id"):
                machine.complete(final["plan_id"])
            else:
                summary = (final or {}).get("failure_summary") or user_message("internal")
                machine.fail(summary)
        except InvalidTransitionError:
            logger.warning("Generation %s left 'generating' while running; result discarded", request_id)
        finally:
            with self._active_lock:
                self._active.pop(request_id, None)
        return machine.snapshot()

    def status(self, request_id: str) -> GenerationStatusView | None:
        machine = self._machine(request_id)
        return machine.status_view() if machine else None

    def reset(self, request_id: str) -> GenerationStatusView | None:
        machine = self._machine(request_id)
        if machine is None:
            return None
        machine.reset()
        return machine.status_view()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def cleanup_snapshots(self, *, force: bool = False) -> list[str]:
        """Drop snapshots finished longer ago than ``snapshot_retention_seconds``.

        Runs at most once per ``CLEANUP_INTERVAL_SECONDS`` unless ``force``.
        """
        now = self._clock()
        if not force and self._last_cleanup is not None and now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return []
        self._last_cleanup = now
        try:
            return self.snapshots.cleanup_expired(settings.snapshot_retention_seconds, now=now)
        except OSError:
            logger.exception("Snapshot cleanup failed")
            return []

    def _stream(self, machine: GenerationStateMachine, state: PipelineState) -> PipelineState:
        final: dict = dict(state)
        for chunk in self.graph.stream(state, stream_mode="updates"):
            for node, update in chunk.items():
                if update:
                    final.update(update)
                floor = STAGE_PROGRESS.get(node)
                if floor is not None:
                    machine.update_progress(floor)
                logger.info("Generation %s: stage '%s' done", machine.request_id, node)
        return final

    def _machine(self, request_id: str) -> GenerationStateMachine | None:
        with self._active_lock:
            machine = self._active.get(request_id)
        if machine is not None:
            return machine
        try:
            machine = GenerationStateMachine.load(request_id, self.snapshots, self._clock)
        except ValueError:
            # Malformed ids can never name a stored request.
            return None
        if machine is not None:
            self._expire_if_stranded(machine)
        return machine

    def _expire_if_stranded(self, machine: GenerationStateMachine) -> None:
        """Fail a ``generating`` snapshot no worker here owns once its budget is spent.

        Such snapshots are left behind by a process that stopped mid-run.
        """
        if machine.status != "generating" or machine.start_time is None:
            return
        elapsed = self._clock() - machine.start_time
        if elapsed <= generation_budget_seconds():
            return
        logger.warning(
            "Generation %s stranded in 'generating' for %.0fs; marking it failed",
            machine.request_id,
            elapsed,
        )
        try:
            machine.fail(user_message("internal"))
        except InvalidTransitionError:
            logger.info("Generation %s left 'generating' before it could be expired", machine.request_id)

    def _register(self, machine: GenerationStateMachine) -> None:
        with self._active_lock:
            self._active[machine.request_id] = machine

    def _record_crash(self, request_id: str, exc: Exception) -> None:
        dump = {
            "stage": "pipeline",
            "requestId": request_id,
            "errorType": type(exc).__name__,
            "error": str(exc),
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }
        try:
            get_artifact_store().write("error", json.dumps(dump, ensure_ascii=False, indent=2))
        except OSError:
            logger.exception("Generation %s: crash dump could not be written", request_id)


_service: GenerationService | None = None
_service_lock = threading.Lock()


def get_generation_service() -> GenerationService:
    global _service
    with _service_lock:
        if _service is None:
            _service = GenerationService()
        return _service


def shutdown_generation_service(wait: bool = True) -> None:
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None:
        service.shutdown(wait=wait)
