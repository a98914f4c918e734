"""Plan repository backend selection."""

from __future__ import annotations

import logging
from typing import Protocol

from exam_planner.config import settings
from exam_planner.db.memory_repository import InMemoryPlanRepository
from exam_planner.schemas.plan import StudyPlan

logger = logging.getLogger(__name__)


class PlanRepository(Protocol):
    def save(self, plan: StudyPlan, *, request_id: str) -> str: ...

    def load(self, plan_id: str) -> StudyPlan: ...


_memory_repo = InMemoryPlanRepository()
_psycopg_repo = None


def get_plan_repository() -> PlanRepository:
    global _psycopg_repo
    backend = settings.plan_backend.lower()
    if backend == "memory":
        return _memory_repo
    if backend == "psycopg2":
        if _psycopg_repo is None:
            # Imported lazily so the memory backend never needs libpq.
            from exam_planner.db.repository import PsycopgPlanRepository

            _psycopg_repo = PsycopgPlanRepository()
        return _psycopg_repo
    raise RuntimeError(f"Unknown plan backend: {settings.plan_backend}")
