"""Per-request generation status: idle -> generating -> success | error."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable

from exam_planner.errors import InvalidTransitionError
from exam_planner.generation.snapshots import SnapshotStore
from exam_planner.schemas.generation import GenerationRequest, GenerationStatusView
from exam_planner.schemas.survey import SurveyAnswers

logger = logging.getLogger(__name__)

# Progress stays below 100 until the terminal step.
MAX_IN_FLIGHT_PROGRESS = 99


class GenerationStateMachine:
    """Owns one ``GenerationRequest`` and persists it after every mutation.

    All transitions hold the same lock, so a late progress tick racing a
    ``complete``/``fail`` is either applied before it or ignored after it.
    """

    def __init__(
        self,
        request_id: str,
        store: SnapshotStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._request = GenerationRequest(id=request_id, created_at=datetime.now(timezone.utc))

    @classmethod
    def load(
        cls,
        request_id: str,
        store: SnapshotStore,
        clock: Callable[[], float] = time.time,
    ) -> "GenerationStateMachine | None":
        """Rebuild a machine from its persisted snapshot, or ``None`` if unknown."""
        snapshot = store.load(request_id)
        if snapshot is None:
            return None
        machine = cls(request_id, store, clock)
        machine._request = snapshot
        return machine

    @property
    def request_id(self) -> str:
        return self._request.id

    @property
    def status(self) -> str:
        return self._request.status

    @property
    def progress(self) -> int:
        return self._request.progress

    @property
    def plan_id(self) -> str | None:
        return self._request.plan_id

    @property
    def error_message(self) -> str | None:
        return self._request.error_message

    @property
    def start_time(self) -> float | None:
        return self._request.start_time

    def snapshot(self) -> GenerationRequest:
        with self._lock:
            return self._request.model_copy(deep=True)

    def status_view(self) -> GenerationStatusView:
        with self._lock:
            request = self._request
            return GenerationStatusView(
                status=request.status,
                progress=request.progress,
                plan_id=request.plan_id,
                error=request.error_message,
            )

    def start_generation(self, survey_answers: SurveyAnswers) -> None:
        with self._lock:
            self._require("generating", allowed_from="idle")
            self._apply(
                status="generating",
                progress=0,
                start_time=self._clock(),
                survey_answers=survey_answers,
                error_message=None,
                plan_id=None,
                finished_at=None,
            )
        logger.info("Generation %s started", self.request_id)

    def update_progress(self, progress: int | float) -> bool:
        """Advance the estimate; returns ``False`` when ignored (not generating)."""
        with self._lock:
            if self._request.status != "generating":
                return False
            clamped = max(0, min(MAX_IN_FLIGHT_PROGRESS, int(progress)))
            if clamped > self._request.progress:
                self._apply(progress=clamped)
            return True

    def complete(self, plan_id: str) -> None:
        with self._lock:
            self._require("success", allowed_from="generating")
            self._apply(status="success", progress=100, plan_id=plan_id, finished_at=self._clock())
        logger.info("Generation %s succeeded (plan %s)", self.request_id, plan_id)

    def fail(self, message: str) -> None:
        with self._lock:
            self._require("error", allowed_from="generating")
            self._apply(status="error", error_message=message, finished_at=self._clock())
        logger.info("Generation %s failed: %s", self.request_id, message)

    def reset(self) -> None:
        with self._lock:
            self._apply(
                status="idle",
                progress=0,
                start_time=None,
                survey_answers=None,
                error_message=None,
                plan_id=None,
                finished_at=None,
            )
        logger.info("Generation %s reset", self.request_id)

    def _require(self, target: str, *, allowed_from: str) -> None:
        current = self._request.status
        if current != allowed_from:
            raise InvalidTransitionError(f"Cannot move {self.request_id} from '{current}' to '{target}'")

    def _apply(self, **changes) -> None:
        self._request = self._request.model_copy(update=changes)
        self._store.save(self._request)
