"""Timer-driven progress estimate for a running generation."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from exam_planner.config import settings
from exam_planner.generation.state_machine import GenerationStateMachine

logger = logging.getLogger(__name__)


def estimate_progress(elapsed_ms: float, estimated_ms: int, cap: int) -> int:
    """``min(floor(elapsed / estimated * 100), cap)``, never negative."""
    if estimated_ms <= 0:
        return cap
    return max(0, min(int(elapsed_ms / estimated_ms * 100), cap))


class ProgressTicker:
    """Daemon thread feeding elapsed-time estimates into a state machine.

    The ticker only proposes values; the machine decides, under its lock,
    whether a tick still applies. It stops on ``stop()`` or as soon as the
    machine leaves ``generating``.
    """

    def __init__(
        self,
        machine: GenerationStateMachine,
        *,
        interval: float | None = None,
        estimated_ms: int | None = None,
        cap: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.machine = machine
        self.interval = settings.progress_tick_seconds if interval is None else interval
        self.estimated_ms = settings.estimated_generation_ms if estimated_ms is None else estimated_ms
        self.cap = settings.progress_tick_cap if cap is None else cap
        self._clock = clock
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"progress-{machine.request_id}",
            daemon=True,
        )

    def start(self) -> "ProgressTicker":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def tick(self) -> bool:
        """Apply one estimate; returns ``False`` once the machine stopped generating."""
        started = self.machine.start_time
        if started is None:
            return self.machine.status == "generating"
        elapsed_ms = (self._clock() - started) * 1000
        return self.machine.update_progress(estimate_progress(elapsed_ms, self.estimated_ms, self.cap))

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if not self.tick():
                logger.debug("Progress ticker for %s stopped", self.machine.request_id)
                return

    def __enter__(self) -> "ProgressTicker":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()
