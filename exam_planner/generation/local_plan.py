"""Rule-based study plan used when the LLM path cannot produce one."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Mapping

from exam_planner.llm.prompt_builder import TITLE_LEVELS
from exam_planner.schemas.materials import LearningMaterials, parse_learning_materials
from exam_planner.schemas.plan import DailyPlan, Phase, StudyPlan, Task
from exam_planner.schemas.survey import SurveyAnswers

logger = logging.getLogger(__name__)

NURSING_MODULES = (
    "Fundamentals of Nursing",
    "Health Assessment",
    "Medical Nursing",
    "Surgical Nursing",
    "Obstetric and Gynecological Nursing",
    "Pediatric Nursing",
    "Emergency and Critical Care Nursing",
    "Geriatric Nursing",
    "Basic Pharmacology",
    "Nursing Management",
)

DEFAULT_CHAPTERS = ("Chapter 1: Core theory", "Chapter 2: Key concepts", "Chapter 3: Practice")

# (name, focus areas, learning goals, fallback resources)
PHASE_TEMPLATES = (
    (
        "Foundation",
        ["Basic medical knowledge", "Nursing fundamentals", "Core practical skills"],
        [
            "Build a complete nursing knowledge framework",
            "Master the core concepts of each exam subject",
        ],
        ["Basic Medicine", "Fundamentals of Nursing", "Medical Nursing"],
    ),
    (
        "Intensive review",
        ["Key chapters", "Difficult topics", "Clinical case studies"],
        ["Work through the hardest topics", "Apply knowledge to clinical cases"],
        ["Medical Nursing", "Surgical Nursing", "Obstetric and Gynecological Nursing"],
    ),
    (
        "Mock exams",
        ["Mock exams", "Past papers", "Exam technique"],
        ["Get familiar with question types and timing", "Close remaining knowledge gaps"],
        ["Past exam papers", "Mock exam sets", "Key point summaries"],
    ),
)

PHASE_SHARES = (0.4, 0.3)


def split_phases(days: int) -> list[tuple[int, int, int]]:
    """Split ``days`` 4:3:3 into ``(phase_id, start_day, end_day)`` triples.

    The first two shares are floored and the last phase takes the remainder.
    Phases that would be empty are dropped, so short horizons collapse into
    fewer phases that still cover day 1..days back to back.
    """
    first = int(days * PHASE_SHARES[0])
    second = int(days * PHASE_SHARES[1])
    lengths = (first, second, days - first - second)
    ranges = []
    start = 1
    for phase_id, length in enumerate(lengths, start=1):
        if length <= 0:
            continue
        ranges.append((phase_id, start, start + length - 1))
        start += length
    return ranges


def is_weekend(day: int) -> bool:
    return day % 7 in (0, 6)


def _title(answers: SurveyAnswers) -> str:
    if answers.title_level == "other":
        return answers.other_title_level.strip() or "Nurse"
    return TITLE_LEVELS[answers.title_level]


def _subjects_and_chapters(
    materials: LearningMaterials | Mapping[str, Any] | None,
) -> tuple[list[str], list[str], bool]:
    """Return ``(subjects, chapters, from_materials)``.

    ``from_materials`` is true when the subjects came from the supplied
    materials rather than the built-in module list.
    """
    parsed = parse_learning_materials(materials) or LearningMaterials()
    subjects = [subject.name for subject in parsed.exam_subjects]
    from_materials = bool(subjects)
    if not from_materials:
        subjects = list(NURSING_MODULES)

    chapters = [
        f"{discipline.name} - {chapter.name}"
        for discipline in parsed.nursing_disciplines
        for chapter in discipline.chapters
    ]
    if not chapters:
        chapters = [f"{subject} - {chapter}" for subject in subjects for chapter in DEFAULT_CHAPTERS]
    return subjects, chapters, from_materials


def _phase_tasks(phase_id: int, subjects: list[str], chapters: list[str], title: str, weekend: bool) -> list[Task]:
    main = subjects[0]
    long_block, short_block = (120, 90) if weekend else (90, 60)
    related = [c for c in chapters if main in c]

    if phase_id == 1:
        tasks = [
            Task(
                title=f"Study the core concepts of {main}",
                description=f"Work through the basic theory of {main} and sketch its knowledge map.",
                duration_minutes=long_block,
                resources=related[:2],
            ),
            Task(
                title="Chapter exercises",
                description="Complete the end-of-chapter questions for today's material.",
                duration_minutes=short_block,
                resources=[f"{main} exercise book"],
            ),
        ]
        if weekend and len(subjects) > 1:
            tasks.append(
                Task(
                    title=f"Preview {subjects[1]}",
                    description=f"Skim the core concepts of {subjects[1]}.",
                    duration_minutes=60,
                    resources=[c for c in chapters if subjects[1] in c][:1],
                )
            )
        return tasks

    if phase_id == 2:
        tasks = [
            Task(
                title=f"Key topics in {main}",
                description=f"Study the difficult and high-yield parts of {main}.",
                duration_minutes=long_block,
                resources=related[:2],
            ),
            Task(
                title="Case study practice",
                description="Apply today's topics to typical clinical cases.",
                duration_minutes=short_block,
                resources=[f"{main} case collection"],
            ),
        ]
        if weekend:
            tasks.append(
                Task(
                    title="Cross-subject review",
                    description="Connect the topics studied this week into one knowledge map.",
                    duration_minutes=60,
                    resources=["Combined topic summary"],
                )
            )
        return tasks

    tasks = [
        Task(
            title="Mock exam practice",
            description=f"Complete a full {title} mock exam and review the answers.",
            duration_minutes=long_block,
            resources=["Mock exam sets", "Past exam papers"],
        ),
        Task(
            title=f"Review weak points in {main}",
            description=f"Revisit the error-prone topics of {main}.",
            duration_minutes=short_block,
            resources=[f"{main} key point summary"],
        ),
    ]
    if weekend:
        tasks.append(
            Task(
                title="Timed full exam",
                description="Sit a timed, all-subject mock exam under exam conditions.",
                duration_minutes=120,
                resources=["Full mock exam"],
            )
        )
    return tasks


def generate_local_plan(
    answers: SurveyAnswers,
    days_until_exam: int,
    plan_days: int,
    *,
    start_date: date | None = None,
    learning_materials: LearningMaterials | Mapping[str, Any] | None = None,
) -> StudyPlan:
    """Build a deterministic three-phase plan without calling the LLM.

    Parameters
    ----------
    answers : SurveyAnswers
        Validated survey answers.
    days_until_exam : int
        Whole preparation horizon; phases span all of it.
    plan_days : int
        Number of daily plans to emit (less than ``days_until_exam`` for
        long-term plans, which then also carry ``monthlyPlan``/``nextSteps``).
    start_date : date, optional
        Date of day 1; daily plans are undated when omitted.
    learning_materials : LearningMaterials or Mapping, optional
        ``examSubjects`` / ``nursingDisciplines`` used for subjects and resources.
        A malformed mapping raises ``SurveyValidationError``.

    Returns
    -------
    StudyPlan
        A plan that satisfies the study-plan validator.
    """
    days_until_exam = max(1, days_until_exam)
    plan_days = max(1, min(plan_days, days_until_exam))
    long_term = plan_days < days_until_exam
    title = _title(answers)
    subjects, chapters, from_materials = _subjects_and_chapters(learning_materials)
    logger.info("Building local plan: %d day horizon, %d daily plans", days_until_exam, plan_days)

    phases = []
    for phase_id, start, end in split_phases(days_until_exam):
        name, focus, goals, fallback_resources = PHASE_TEMPLATES[phase_id - 1]
        length = end - start + 1
        phases.append(
            Phase(
                id=phase_id,
                name=name,
                description=f"{name} for the {title} exam, days {start}-{end} ({length} days).",
                start_day=start,
                end_day=end,
                focus_areas=focus,
                learning_goals=goals,
                recommended_resources=subjects[:3] if phase_id == 1 and from_materials else fallback_resources,
                monthly_plan=_monthly_plan(start, end) if long_term else None,
            )
        )

    daily_plans = []
    for day in range(1, plan_days + 1):
        phase_id = next(p.id for p in phases if p.start_day <= day <= p.end_day)
        weekend = is_weekend(day)
        index = (day - 1) % len(subjects)
        day_subjects = [subjects[index]]
        if weekend and len(subjects) > 1:
            day_subjects.append(subjects[(index + 1) % len(subjects)])
        tips = f"Spend 15 minutes at the end of the day recapping {' and '.join(day_subjects)}."
        if weekend:
            tips += " Use the weekend to summarise the whole week."
        daily_plans.append(
            DailyPlan(
                day=day,
                date=(start_date + timedelta(days=day - 1)).isoformat() if start_date else None,
                phase_id=phase_id,
                title=f"Day {day} study plan",
                subjects=day_subjects,
                tasks=_phase_tasks(phase_id, day_subjects, chapters, title, weekend),
                review_tips=tips,
            )
        )

    overview = (
        f"This plan prepares you for the {title} exam over {days_until_exam} days, "
        "split into foundation, intensive review and mock exam phases."
    )
    next_steps = None
    if long_term:
        overview += f" Only the first {plan_days} days are planned in detail."
        next_steps = (
            f"After the first {plan_days} days: assess your progress, take a checkpoint test, "
            "and plan the next block around the weak areas it reveals."
        )
    return StudyPlan(overview=overview, phases=phases, daily_plans=daily_plans, next_steps=next_steps)


def _monthly_plan(start: int, end: int) -> str:
    lines = []
    for month_start in range(start, end + 1, 30):
        month_end = min(month_start + 29, end)
        lines.append(f"Days {month_start}-{month_end}: month {(month_start - start) // 30 + 1} of this phase")
    return "\n".join(lines)
