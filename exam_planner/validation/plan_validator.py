"""Schema and cross-field validation for extracted study-plan payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from exam_planner.errors import PlanValidationError
from exam_planner.schemas.plan import DailyPlan, Phase, StudyPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def _pydantic_violations(exc: ValidationError, prefix: str) -> list[Violation]:
    violations = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        violations.append(Violation(f"{prefix}.{loc}" if loc else prefix, err["msg"]))
    return violations


def _parse_items(raw: Any, key: str, model: type[BaseModel], violations: list[Violation]) -> list:
    if raw is None:
        violations.append(Violation(key, "field required"))
        return []
    if not isinstance(raw, list):
        violations.append(Violation(key, f"expected a list, got {type(raw).__name__}"))
        return []
    if not raw:
        violations.append(Violation(key, "at least one entry is required"))
        return []
    items = []
    for idx, item in enumerate(raw):
        try:
            items.append(model.model_validate(item))
        except ValidationError as exc:
            violations.extend(_pydantic_violations(exc, f"{key}[{idx}]"))
    return items


def check_phases(phases: list[Phase]) -> list[Violation]:
    """Unique ids, ``startDay <= endDay``, and back-to-back ordering from day 1."""
    violations: list[Violation] = []
    seen: set[int] = set()
    for phase in phases:
        if phase.id in seen:
            violations.append(Violation(f"phases[id={phase.id}]", "duplicate phase id"))
        seen.add(phase.id)
        if phase.start_day > phase.end_day:
            violations.append(
                Violation(
                    f"phases[id={phase.id}]",
                    f"startDay {phase.start_day} is after endDay {phase.end_day}",
                )
            )

    ordered = sorted(phases, key=lambda p: (p.start_day, p.end_day))
    if ordered and ordered[0].start_day != 1:
        violations.append(
            Violation(f"phases[id={ordered[0].id}]", f"first phase starts on day {ordered[0].start_day}, expected 1")
        )
    for prev, nxt in zip(ordered, ordered[1:]):
        if nxt.start_day <= prev.end_day:
            violations.append(
                Violation(
                    f"phases[id={nxt.id}]",
                    f"overlaps phase {prev.id} (days {nxt.start_day}-{nxt.end_day} vs {prev.start_day}-{prev.end_day})",
                )
            )
        elif nxt.start_day > prev.end_day + 1:
            violations.append(
                Violation(
                    f"phases[id={nxt.id}]",
                    f"gap after phase {prev.id}: days {prev.end_day + 1}-{nxt.start_day - 1} are not covered",
                )
            )
    return violations


def check_daily_plans(phases: list[Phase], daily_plans: list[DailyPlan]) -> list[Violation]:
    """Phase references resolve, days sit inside their phase, days run 1..N."""
    violations: list[Violation] = []
    phase_by_id: dict[int, Phase] = {}
    for phase in phases:
        phase_by_id.setdefault(phase.id, phase)

    seen_days: set[int] = set()
    for daily in daily_plans:
        path = f"dailyPlans[day={daily.day}]"
        if daily.day in seen_days:
            violations.append(Violation(path, "duplicate day"))
        seen_days.add(daily.day)

        phase = phase_by_id.get(daily.phase_id)
        if phase is None:
            violations.append(Violation(path, f"phaseId {daily.phase_id} does not match any phase"))
        elif not phase.start_day <= daily.day <= phase.end_day:
            violations.append(
                Violation(
                    path,
                    f"day falls outside phase {phase.id} range {phase.start_day}-{phase.end_day}",
                )
            )

    if seen_days:
        missing = sorted(set(range(1, max(seen_days) + 1)) - seen_days)
        if missing:
            shown = ", ".join(str(day) for day in missing[:10])
            violations.append(Violation("dailyPlans", f"days are not contiguous from 1; missing {shown}"))
    return violations


def collect_violations(payload: Any) -> tuple[StudyPlan | None, list[Violation]]:
    """Validate ``payload`` and return ``(plan, [])`` or ``(None, violations)``.

    Every violation found is reported, not just the first.
    """
    if not isinstance(payload, Mapping):
        return None, [Violation("$", f"plan must be a JSON object, got {type(payload).__name__}")]

    violations: list[Violation] = []
    overview = payload.get("overview")
    if not isinstance(overview, str):
        violations.append(Violation("overview", "field required (string)"))
    next_steps = payload.get("nextSteps")
    if next_steps is not None and not isinstance(next_steps, str):
        violations.append(Violation("nextSteps", "expected a string"))

    phases = _parse_items(payload.get("phases"), "phases", Phase, violations)
    daily_plans = _parse_items(payload.get("dailyPlans"), "dailyPlans", DailyPlan, violations)

    violations.extend(check_phases(phases))
    violations.extend(check_daily_plans(phases, daily_plans))

    if violations:
        return None, violations
    plan = StudyPlan(overview=overview, phases=phases, daily_plans=daily_plans, next_steps=next_steps)
    return plan, []


def validate_plan(payload: Any) -> StudyPlan:
    """Return the validated ``StudyPlan`` or raise ``PlanValidationError`` with all violations."""
    plan, violations = collect_violations(payload)
    if plan is None:
        logger.warning("Plan validation found %d violation(s)", len(violations))
        raise PlanValidationError(violations)
    return plan
