from __future__ import annotations
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from config import DEFAULT_CONFIG, PlannerConfig
from models import DaySchedule, Plan, PlanInputs, Progress, StudySlot, Subject, Summary, ValidationResult
from rules import RulesEngine
from scheduler import Scheduler

logger = logging.getLogger(__name__)


def generate_plan(
    inputs: PlanInputs,
    subjects: Optional[List[Subject]] = None,
    config: Optional[PlannerConfig] = None,
) -> Plan:
    config = config or DEFAULT_CONFIG
    subjects = list(inputs.subjects if subjects is None else subjects)
    rules = RulesEngine(config)
    scheduler = Scheduler(rules, config)

    logger.info(
        "Generating %d-day plan for %d subjects at %.1f hours/day",
        inputs.timeline.total_days, len(subjects), inputs.timeline.daily_hours,
    )
    if not subjects:
        logger.warning("No subjects to schedule; returning an empty plan")
        return empty_plan(inputs)

    allocations = rules.allocate_daily_hours(subjects, inputs.timeline.daily_hours)
    run = scheduler.generate_schedule(inputs, allocations)

    validation = rules.validate_schedule(run.days, subjects, run.context)
    suggestions = rules.generate_suggestions(validation.violations, run.days)
    summary = scheduler.summarize(run.days, inputs.timeline.total_days)
    logger.info(
        "Plan ready: %d sessions, %d violations, efficiency %d%%",
        summary.total_sessions, len(validation.violations), summary.efficiency_score,
    )

    return Plan(
        schedule=run.days,
        allocations=allocations,
        validation=validation,
        suggestions=suggestions,
        summary=summary,
    )


def empty_plan(inputs: PlanInputs) -> Plan:
    """A plan with one empty day per timeline day and nothing allocated."""
    timeline = inputs.timeline
    days = [
        DaySchedule(day=i + 1, date=timeline.start_date + timedelta(days=i), slots=[])
        for i in range(timeline.total_days)
    ]
    return Plan(
        schedule=days,
        allocations=[],
        validation=ValidationResult(is_valid=True),
        suggestions=[],
        summary=Summary(),
    )


def get_day_schedule(plan: Plan, day_index: int) -> DaySchedule | None:
    if 0 <= day_index < len(plan.schedule):
        return plan.schedule[day_index]
    return None


def find_session(plan: Plan, session_id: str) -> StudySlot | None:
    for day in plan.schedule:
        for slot in day.study_slots():
            if slot.id == session_id:
                return slot
    return None


def apply_progress(plan: Plan, progress: Progress) -> Plan:
    """
    Return a copy of ``plan`` with completion flags and per-subject
    completed hours taken from the completion store.
    """
    done = progress.completed_sessions
    hours: Dict[str, float] = {}
    sessions: Dict[str, int] = {}
    schedule: List[DaySchedule] = []
    for day in plan.schedule:
        slots = []
        for slot in day.slots:
            if isinstance(slot, StudySlot):
                completed = slot.id in done
                slot = slot.model_copy(update={"completed": completed})
                if completed:
                    hours[slot.subject_id] = hours.get(slot.subject_id, 0) + slot.duration / 60
                    sessions[slot.subject_id] = sessions.get(slot.subject_id, 0) + 1
            slots.append(slot)
        schedule.append(day.model_copy(update={"slots": slots}))

    allocations = [
        a.model_copy(update={
            "hours_completed": hours.get(a.id, 0),
            "sessions_completed": sessions.get(a.id, 0),
        })
        for a in plan.allocations
    ]
    return plan.model_copy(update={"schedule": schedule, "allocations": allocations})


def completion_rate(plan: Plan) -> int:
    needed = sum(a.hours_needed for a in plan.allocations)
    completed = sum(a.hours_completed for a in plan.allocations)
    if needed <= 0:
        return 0
    return round(completed / needed * 100)
