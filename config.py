from __future__ import annotations
from typing import Dict, Tuple
from pydantic import BaseModel, Field


SESSION_STUDY = "study"
SESSION_REVISION = "revision"
SESSION_BREAK = "break"
STUDY_TYPES = (SESSION_STUDY, SESSION_REVISION)

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

STORAGE_KEYS = {
    "plan": "smartStudyPlan",
    "preferences": "studyPreferences",
    "progress": "studyProgress",
}

EXPORT_VERSION = "1.0"


class PlannerConfig(BaseModel):
    priority_weights: Dict[str, float] = Field(
        default_factory=lambda: {"high": 3, "medium": 2, "low": 1}
    )
    difficulty_weights: Dict[str, float] = Field(
        default_factory=lambda: {"hard": 1.5, "medium": 1, "easy": 0.8}
    )

    morning_peak: Tuple[int, int] = (9, 12)
    afternoon_window: Tuple[int, int] = (13, 17)
    evening_window: Tuple[int, int] = (18, 20)

    day_start_hour: int = Field(default=9, ge=0, le=23)
    # Single bound for the greedy fill; nothing is scheduled to start at or after it.
    day_end_hour: int = Field(default=21, ge=1, le=24)
    # Shown in the UI only.
    avoid_late_night_hour: int = Field(default=22, ge=0, le=24)

    hard_session_cap: int = 45
    easy_session_floor: int = 60
    hard_break_multiplier: float = 1.5
    easy_break_multiplier: float = 0.8

    max_sessions_without_long_break: int = Field(default=4, ge=1)
    long_break_duration: int = Field(default=30, gt=0)
    revision_frequency: int = Field(default=3, ge=1)
    revision_priority: float = 1.5
    consecutive_cool_down: int = 2
    max_revision_subjects: int = Field(default=3, ge=1)
    max_subjects_per_day: int = Field(default=4, ge=1)

    lunch_start_hour: int = 12
    lunch_latest_hour: int = 14
    lunch_duration: int = 60

    too_many_sessions: int = 6
    efficiency_threshold: int = 70


DEFAULT_CONFIG = PlannerConfig()
