from __future__ import annotations
from pydantic import BaseModel, Field, computed_field
from datetime import date, datetime
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union
from uuid import uuid4

from config import PlannerConfig, STUDY_TYPES

CalendarDate = date

Priority = Literal["high", "medium", "low"]
Difficulty = Literal["easy", "medium", "hard"]
BreakType = Literal["regular", "long", "lunch"]
ViolationType = Literal["consecutive_sessions", "time_preference", "revision_needed"]
SuggestionType = Literal["warning", "info", "important", "tip"]


def format_clock(minutes: int) -> str:
    """Minutes since midnight as a 12-hour clock string, e.g. 570 -> '9:30 AM'."""
    hours, mins = divmod(minutes, 60)
    hours %= 24
    period = "PM" if hours >= 12 else "AM"
    display = hours % 12 or 12
    return f"{display}:{mins:02d} {period}"


class Subject(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    priority: Priority = "medium"
    difficulty: Difficulty = "medium"
    hours_needed: float = Field(gt=0)
    hours_completed: float = Field(default=0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)
    weight: float = 0


class SubjectAdjustments(BaseModel):
    weight_multiplier: float = 1
    adapted_session_length: Optional[int] = None
    break_multiplier: float = 1
    preferred_hours: Optional[Tuple[int, int]] = None
    avoid_consecutive: bool = False
    cool_down: int = 0
    needs_revision: bool = False
    revision_priority: float = 1


class WeightedSubject(Subject):
    adjustments: SubjectAdjustments = Field(default_factory=SubjectAdjustments)


class Allocation(WeightedSubject):
    allocated_hours: float = 0
    sessions_per_day: int = 1


class SubjectConstraints(BaseModel):
    preferred_hours: Optional[Tuple[int, int]] = None
    max_sessions_per_day: int
    min_break_between: int
    avoid_after: Optional[str] = None
    cool_down: int = 0


class _TimedSlot(BaseModel):
    id: str
    start_minute: int = Field(ge=0)
    end_minute: int = Field(ge=0)
    duration: int = Field(gt=0)
    day: int = Field(ge=1)

    @computed_field
    @property
    def start_time(self) -> str:
        return format_clock(self.start_minute)

    @computed_field
    @property
    def end_time(self) -> str:
        return format_clock(self.end_minute)

    def shifted(self, minutes: int):
        return self.model_copy(update={
            "start_minute": self.start_minute + minutes,
            "end_minute": self.end_minute + minutes,
        })


class StudySlot(_TimedSlot):
    type: Literal["study", "revision"] = "study"
    subject_id: str
    subject_name: str
    priority: Priority
    difficulty: Difficulty
    completed: bool = False


class BreakSlot(_TimedSlot):
    type: Literal["break"] = "break"
    break_type: BreakType = "regular"
    label: str = "Break"


Slot = Annotated[Union[StudySlot, BreakSlot], Field(discriminator="type")]


class DaySchedule(BaseModel):
    day: int = Field(ge=1)
    date: CalendarDate
    slots: List[Slot] = Field(default_factory=list)

    def study_slots(self) -> List[StudySlot]:
        return [s for s in self.slots if s.type in STUDY_TYPES]

    def break_slots(self) -> List[BreakSlot]:
        return [s for s in self.slots if s.type == "break"]

    @computed_field
    @property
    def total_sessions(self) -> int:
        return len(self.study_slots())

    @computed_field
    @property
    def total_study_hours(self) -> float:
        return sum(s.duration for s in self.study_slots()) / 60


class SchedulingContext(BaseModel):
    last_scheduled_subject: Optional[str] = None
    days_since_last_study: Dict[str, int] = Field(default_factory=dict)
    consecutive_sessions: int = 0
    session_count_today: int = 0
    current_day: int = 0
    default_session_length: int = 60


class Violation(BaseModel):
    type: ViolationType
    message: str
    day: Optional[int] = None
    slot: Optional[int] = None
    subject: Optional[str] = None
    days_since_last: Optional[int] = None


class Suggestion(BaseModel):
    type: SuggestionType
    message: str
    action: str
    priority: Priority


class SubjectStats(BaseModel):
    sessions: int = 0
    daily_sessions: Dict[int, int] = Field(default_factory=dict)
    last_session_day: int = -1


class ValidationResult(BaseModel):
    is_valid: bool
    violations: List[Violation] = Field(default_factory=list)
    stats: Dict[str, SubjectStats] = Field(default_factory=dict)


class DailyAverages(BaseModel):
    sessions: float = 0
    study_hours: float = 0


class Summary(BaseModel):
    total_study_hours: float = 0
    total_break_hours: float = 0
    total_sessions: int = 0
    subject_distribution: Dict[str, float] = Field(default_factory=dict)
    daily_averages: DailyAverages = Field(default_factory=DailyAverages)
    efficiency_score: int = 0


class Timeline(BaseModel):
    start_date: date
    end_date: date
    total_days: int = Field(ge=1)
    daily_hours: float = Field(gt=0)
    total_study_hours: float = Field(ge=0)


class SessionSettings(BaseModel):
    session_length: int = Field(default=60, gt=0)
    break_duration: int = Field(default=10, ge=0)
    long_break_duration: int = Field(default=30, gt=0)


class PlanInputs(BaseModel):
    timeline: Timeline
    session_settings: SessionSettings = Field(default_factory=SessionSettings)
    subjects: List[Subject] = Field(default_factory=list)


class Plan(BaseModel):
    schedule: List[DaySchedule]
    allocations: List[Allocation]
    validation: ValidationResult
    suggestions: List[Suggestion] = Field(default_factory=list)
    summary: Summary
    generated_at: datetime = Field(default_factory=datetime.now)


class Preferences(BaseModel):
    subjects: List[Subject] = Field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    daily_hours: int = Field(default=6, ge=2, le=12)
    session_length: int = Field(default=60, gt=0)
    break_duration: int = Field(default=10, ge=0)
    config: PlannerConfig = Field(default_factory=PlannerConfig)
    last_updated: Optional[datetime] = None


class Progress(BaseModel):
    completed_sessions: Dict[str, datetime] = Field(default_factory=dict)
    last_updated: Optional[datetime] = None


class CompletionStats(BaseModel):
    total: int = 0
    completed: int = 0
    percentage: int = 0


class ImportResult(BaseModel):
    success: bool
    message: str


class InputValidation(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
