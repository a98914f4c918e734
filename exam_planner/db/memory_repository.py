"""In-process plan repository (default backend and test double)."""

from __future__ import annotations

import threading
import uuid

from exam_planner.errors import PlanNotFoundError
from exam_planner.schemas.plan import StudyPlan


class InMemoryPlanRepository:
    def __init__(self) -> None:
        self._plans: dict[str, tuple[str, dict]] = {}
        self._lock = threading.Lock()

    def save(self, plan: StudyPlan, *, request_id: str) -> str:
        plan_id = str(uuid.uuid4())
        with self._lock:
            self._plans[plan_id] = (request_id, plan.to_payload())
        return plan_id

    def load(self, plan_id: str) -> StudyPlan:
        with self._lock:
            entry = self._plans.get(plan_id)
        if entry is None:
            raise PlanNotFoundError(plan_id)
        return StudyPlan.model_validate(entry[1])

    def request_id_for(self, plan_id: str) -> str | None:
        with self._lock:
            entry = self._plans.get(plan_id)
        return entry[0] if entry else None

    def __len__(self) -> int:
        return len(self._plans)
