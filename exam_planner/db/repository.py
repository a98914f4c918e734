"""Study-plan persistence in PostgreSQL (psycopg2, JSONB column)."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from exam_planner.db.connection import pooled_connection
from exam_planner.errors import PlanNotFoundError, PlanStorageError
from exam_planner.schemas.plan import StudyPlan

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS study_plans (
    plan_id     UUID PRIMARY KEY,
    request_id  TEXT NOT NULL,
    plan        JSONB NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


class PsycopgPlanRepository:
    """Stores each validated plan as one ``study_plans`` row.

    ``connect`` yields a DB-API connection and owns commit/rollback; it is
    injectable so the SQL can be exercised without a server.
    """

    def __init__(self, connect: Callable = pooled_connection) -> None:
        self._connect = connect
        self._schema_ready = False

    def _execute(self, sql: str, params: list[Any] | None = None, *, fetch: str | None = None):
        try:
            with self._connect() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params or [])
                    if fetch == "one":
                        return cur.fetchone()
                    return None
        except psycopg2.Error as exc:
            raise PlanStorageError(f"{type(exc).__name__}: {exc}") from exc

    def ensure_schema(self) -> None:
        if not self._schema_ready:
            self._execute(SCHEMA_SQL)
            self._schema_ready = True

    def save(self, plan: StudyPlan, *, request_id: str) -> str:
        """Insert ``plan`` and return its new plan id."""
        self.ensure_schema()
        plan_id = str(uuid.uuid4())
        self._execute(
            "INSERT INTO study_plans (plan_id, request_id, plan) VALUES (%s, %s, %s)",
            [plan_id, request_id, Json(plan.to_payload())],
        )
        logger.info("Stored plan %s for request %s", plan_id, request_id)
        return plan_id

    def load(self, plan_id: str) -> StudyPlan:
        self.ensure_schema()
        try:
            uuid.UUID(plan_id)
        except ValueError as exc:
            raise PlanNotFoundError(plan_id) from exc
        row = self._execute(
            "SELECT plan FROM study_plans WHERE plan_id = %s",
            [plan_id],
            fetch="one",
        )
        if row is None:
            raise PlanNotFoundError(plan_id)
        return StudyPlan.model_validate(row["plan"])
