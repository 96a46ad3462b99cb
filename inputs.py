from __future__ import annotations
from datetime import date
from typing import List, Optional

from config import DEFAULT_CONFIG, PlannerConfig
from models import InputValidation, PlanInputs, SessionSettings, Subject, Timeline

MIN_DAILY_HOURS = 2
MAX_DAILY_HOURS = 12
# Subjects may ask for up to 20% more hours than the timeline offers.
HOURS_BUFFER = 1.2


def build_timeline(start_date: date, end_date: date, daily_hours: float) -> Timeline:
    total_days = abs((end_date - start_date).days) + 1
    return Timeline(
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        daily_hours=daily_hours,
        total_study_hours=total_days * daily_hours,
    )


def build_inputs(
    start_date: date,
    end_date: date,
    daily_hours: float,
    subjects: List[Subject],
    session_length: int = 60,
    break_duration: int = 10,
    config: Optional[PlannerConfig] = None,
) -> PlanInputs:
    config = config or DEFAULT_CONFIG
    return PlanInputs(
        timeline=build_timeline(start_date, end_date, daily_hours),
        session_settings=SessionSettings(
            session_length=session_length,
            break_duration=break_duration,
            long_break_duration=config.long_break_duration,
        ),
        subjects=[s for s in subjects if s.name.strip() and s.hours_needed > 0],
    )


def validate_inputs(inputs: PlanInputs) -> InputValidation:
    errors: List[str] = []
    timeline = inputs.timeline

    if timeline.start_date >= timeline.end_date:
        errors.append("End date must be after start date")
    if timeline.total_days < 1:
        errors.append("Study period must be at least 1 day")
    if not MIN_DAILY_HOURS <= timeline.daily_hours <= MAX_DAILY_HOURS:
        errors.append(f"Daily study hours must be between {MIN_DAILY_HOURS} and {MAX_DAILY_HOURS} hours")
    if not inputs.subjects:
        errors.append("Please add at least one subject")

    needed = sum(s.hours_needed for s in inputs.subjects)
    available = timeline.total_study_hours
    if needed > available * HOURS_BUFFER:
        errors.append(
            f"Total hours needed ({needed:g}) exceeds available hours ({available:g}). "
            "Consider reducing hours or extending timeline."
        )

    return InputValidation(is_valid=not errors, errors=errors)


def default_subjects() -> List[Subject]:
    return [
        Subject(name="Data Structures", priority="high", difficulty="hard", hours_needed=30),
        Subject(name="Algorithms", priority="high", difficulty="medium", hours_needed=25),
        Subject(name="Database Systems", priority="medium", difficulty="medium", hours_needed=20),
    ]
