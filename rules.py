from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config import DEFAULT_CONFIG, PRIORITY_ORDER, STUDY_TYPES, PlannerConfig
from models import (
    Allocation,
    DaySchedule,
    SchedulingContext,
    Subject,
    SubjectAdjustments,
    SubjectConstraints,
    SubjectStats,
    Suggestion,
    ValidationResult,
    Violation,
    WeightedSubject,
)

logger = logging.getLogger(__name__)

IDEAL_BREAK_RATIO = 17 / 52


@dataclass(frozen=True)
class RuleAdjustment:
    """Partial result of one rule; ``None`` means the rule leaves the field alone."""
    weight_multiplier: Optional[float] = None
    adapted_session_length: Optional[int] = None
    break_multiplier: Optional[float] = None
    preferred_hours: Optional[Tuple[int, int]] = None
    avoid_consecutive: Optional[bool] = None
    cool_down: Optional[int] = None
    needs_revision: Optional[bool] = None
    revision_priority: Optional[float] = None


RuleFn = Callable[[Subject, SchedulingContext, PlannerConfig], RuleAdjustment]


@dataclass(frozen=True)
class Rule:
    name: str
    apply: RuleFn


# Folded by multiplication; every other field is last-writer-wins.
_MULTIPLICATIVE = ("weight_multiplier", "revision_priority")
_OVERRIDES = (
    "adapted_session_length",
    "break_multiplier",
    "preferred_hours",
    "avoid_consecutive",
    "cool_down",
    "needs_revision",
)


def _priority_allocation(subject: Subject, context: SchedulingContext, config: PlannerConfig) -> RuleAdjustment:
    return RuleAdjustment(weight_multiplier=config.priority_weights.get(subject.priority, 1))


def _difficulty_adaptation(subject: Subject, context: SchedulingContext, config: PlannerConfig) -> RuleAdjustment:
    length = context.default_session_length
    multiplier = 1.0
    if subject.difficulty == "hard":
        length = min(length, config.hard_session_cap)
        multiplier = config.hard_break_multiplier
    elif subject.difficulty == "easy":
        length = max(length, config.easy_session_floor)
        multiplier = config.easy_break_multiplier
    return RuleAdjustment(adapted_session_length=length, break_multiplier=multiplier)


def _time_preference(subject: Subject, context: SchedulingContext, config: PlannerConfig) -> RuleAdjustment:
    if subject.difficulty == "hard" or subject.priority == "high":
        hours = config.morning_peak
    elif subject.difficulty == "medium" or subject.priority == "medium":
        hours = config.afternoon_window
    else:
        hours = config.evening_window
    return RuleAdjustment(preferred_hours=tuple(hours))


def _consecutive_avoidance(subject: Subject, context: SchedulingContext, config: PlannerConfig) -> RuleAdjustment:
    avoid = context.last_scheduled_subject == subject.id
    return RuleAdjustment(
        avoid_consecutive=avoid,
        cool_down=config.consecutive_cool_down if avoid else 0,
    )


def _revision_scheduling(subject: Subject, context: SchedulingContext, config: PlannerConfig) -> RuleAdjustment:
    days_since = context.days_since_last_study.get(subject.id, 0)
    needs = days_since >= config.revision_frequency
    return RuleAdjustment(
        needs_revision=needs,
        revision_priority=config.revision_priority if needs else 1,
    )


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule("priority_allocation", _priority_allocation),
    Rule("difficulty_adaptation", _difficulty_adaptation),
    Rule("time_preference", _time_preference),
    Rule("consecutive_avoidance", _consecutive_avoidance),
    Rule("revision_scheduling", _revision_scheduling),
)


def fold_adjustments(results: Sequence[RuleAdjustment]) -> SubjectAdjustments:
    folded = SubjectAdjustments()
    updates: Dict[str, object] = {}
    for result in results:
        for name in _MULTIPLICATIVE:
            value = getattr(result, name)
            if value is not None:
                updates[name] = updates.get(name, 1) * value
        for name in _OVERRIDES:
            value = getattr(result, name)
            if value is not None:
                updates[name] = value
    return folded.model_copy(update=updates)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_study(slot) -> bool:
    return slot.type in STUDY_TYPES


def calculate_efficiency_score(schedule: Sequence[DaySchedule]) -> int:
    """
    Rate 0-100 how close the plan's break:study ratio is to 17:52.
    A plan whose breaks exceed 20% of study time gets a 10 point bonus.
    """
    study = 0
    rest = 0
    for day in schedule:
        for slot in day.slots:
            if _is_study(slot):
                study += slot.duration
            else:
                rest += slot.duration
    return efficiency_from_minutes(study, rest)


def efficiency_from_minutes(study_minutes: float, break_minutes: float) -> int:
    if study_minutes <= 0:
        return 0
    ratio = break_minutes / study_minutes
    ratio_score = max(0.0, 100 - abs(ratio - IDEAL_BREAK_RATIO) * 1000)
    bonus = 10 if break_minutes > study_minutes * 0.2 else 0
    return min(100, _round_half_up(ratio_score + bonus))


class RulesEngine:
    def __init__(self, config: PlannerConfig | None = None, rules: Sequence[Rule] = DEFAULT_RULES):
        self.config = config or DEFAULT_CONFIG
        self.rules: Tuple[Rule, ...] = tuple(rules)

    def adjustments_for(self, subject: Subject, context: SchedulingContext | None = None) -> SubjectAdjustments:
        context = context or SchedulingContext()
        return fold_adjustments([rule.apply(subject, context, self.config) for rule in self.rules])

    def calculate_subject_weights(
        self,
        subjects: Sequence[Subject],
        context: SchedulingContext | None = None,
    ) -> List[WeightedSubject]:
        out: List[WeightedSubject] = []
        for subject in subjects:
            adjustments = self.adjustments_for(subject, context)
            weight = adjustments.weight_multiplier * adjustments.revision_priority
            weight *= self.config.difficulty_weights.get(subject.difficulty, 1)
            data = subject.model_dump(include=set(Subject.model_fields))
            data["weight"] = weight
            out.append(WeightedSubject(**data, adjustments=adjustments))
        return out

    def allocate_daily_hours(
        self,
        subjects: Sequence[Subject],
        total_daily_hours: float,
        context: SchedulingContext | None = None,
    ) -> List[Allocation]:
        weighted = self.calculate_subject_weights(subjects, context)
        if not weighted:
            return []

        total_weight = sum(s.weight for s in weighted)
        allocations: List[Allocation] = []
        for subject in weighted:
            if total_weight > 0:
                share = subject.weight / total_weight
            else:
                share = 1 / len(weighted)
            hours = share * total_daily_hours
            allocations.append(Allocation(
                **subject.model_dump(exclude={"adjustments"}),
                adjustments=subject.adjustments,
                allocated_hours=hours,
                sessions_per_day=max(1, math.ceil(hours / 2)),
            ))

        if total_weight <= 0:
            logger.warning(
                "All %d subjects have zero weight; splitting %.2f daily hours evenly.",
                len(weighted), total_daily_hours,
            )

        allocations.sort(key=lambda a: PRIORITY_ORDER.get(a.priority, 0), reverse=True)
        return allocations

    def get_optimal_session_length(self, subject: Subject, default_length: int) -> int:
        context = SchedulingContext(default_session_length=default_length)
        adapted = self.adjustments_for(subject, context).adapted_session_length
        return adapted or default_length

    def get_break_duration(self, subject: Subject, default_break: int) -> int:
        multiplier = self.adjustments_for(subject).break_multiplier or 1
        return _round_half_up(default_break * multiplier)

    def get_preferred_hours(self, subject: Subject) -> Tuple[int, int] | None:
        return self.adjustments_for(subject).preferred_hours

    def needs_long_break(self, consecutive_sessions: int, threshold: int) -> bool:
        return consecutive_sessions >= threshold

    def generate_constraints(
        self,
        subjects: Sequence[Subject],
        context: SchedulingContext | None = None,
    ) -> Dict[str, SubjectConstraints]:
        context = context or SchedulingContext()
        constraints: Dict[str, SubjectConstraints] = {}
        for subject in subjects:
            adjustments = self.adjustments_for(subject, context)
            hard = subject.difficulty == "hard"
            constraints[subject.id] = SubjectConstraints(
                preferred_hours=adjustments.preferred_hours,
                max_sessions_per_day=3 if hard else 4,
                min_break_between=20 if hard else 10,
                avoid_after=context.last_scheduled_subject if adjustments.avoid_consecutive else None,
                cool_down=adjustments.cool_down,
            )
        return constraints

    def validate_schedule(
        self,
        schedule: Sequence[DaySchedule],
        subjects: Sequence[Subject],
        context: SchedulingContext,
    ) -> ValidationResult:
        violations: List[Violation] = []
        by_id = {s.id: s for s in subjects}
        stats: Dict[str, SubjectStats] = {s.id: SubjectStats() for s in subjects}
        preferred = {s.id: self.get_preferred_hours(s) for s in subjects}

        for day_index, day in enumerate(schedule):
            studied_today = {slot.subject_id for slot in day.slots if _is_study(slot)}
            # A single subject day cannot avoid repeats.
            check_repeats = len(studied_today) > 1
            last_subject_id = None

            for slot_index, slot in enumerate(day.slots):
                if not _is_study(slot):
                    continue

                entry = stats.setdefault(slot.subject_id, SubjectStats())
                entry.sessions += 1
                entry.daily_sessions[day_index] = entry.daily_sessions.get(day_index, 0) + 1
                entry.last_session_day = day_index

                if check_repeats and slot.subject_id == last_subject_id:
                    violations.append(Violation(
                        type="consecutive_sessions",
                        day=day_index,
                        slot=slot_index,
                        subject=slot.subject_name,
                        message=f"Subject repeated consecutively: {slot.subject_name}",
                    ))
                last_subject_id = slot.subject_id

                hours = preferred.get(slot.subject_id)
                if hours is not None and len(hours) == 2:
                    start, end = hours
                    hour = (slot.start_minute // 60) % 24
                    if hour < start or hour >= end:
                        violations.append(Violation(
                            type="time_preference",
                            day=day_index,
                            slot=slot_index,
                            subject=slot.subject_name,
                            message=(
                                f"{slot.subject_name} scheduled outside preferred time "
                                f"({start}:00-{end}:00)"
                            ),
                        ))

        for subject_id, entry in stats.items():
            subject = by_id.get(subject_id)
            if subject is None:
                continue
            days_between = context.current_day - entry.last_session_day
            if days_between > self.config.revision_frequency:
                violations.append(Violation(
                    type="revision_needed",
                    subject=subject.name,
                    days_since_last=days_between,
                    message=f"{subject.name} hasn't been studied for {days_between} days. Needs revision.",
                ))

        return ValidationResult(is_valid=not violations, violations=violations, stats=stats)

    def generate_suggestions(
        self,
        violations: Sequence[Violation],
        schedule: Sequence[DaySchedule],
    ) -> List[Suggestion]:
        suggestions: List[Suggestion] = []
        for violation in violations:
            if violation.type == "consecutive_sessions":
                suggestions.append(Suggestion(
                    type="warning",
                    message=(
                        "Avoid consecutive sessions of the same subject. "
                        "Consider adding a break or switching subjects."
                    ),
                    action="reschedule",
                    priority="medium",
                ))
            elif violation.type == "time_preference":
                suggestions.append(Suggestion(
                    type="info",
                    message=violation.message,
                    action="consider_reschedule",
                    priority="low",
                ))
            elif violation.type == "revision_needed":
                suggestions.append(Suggestion(
                    type="important",
                    message=violation.message,
                    action="add_revision",
                    priority="high",
                ))

        total_sessions = sum(day.total_sessions for day in schedule)
        if total_sessions > self.config.too_many_sessions:
            suggestions.append(Suggestion(
                type="tip",
                message="Consider adding more breaks to maintain focus and productivity.",
                action="increase_breaks",
                priority="medium",
            ))

        score = calculate_efficiency_score(schedule)
        if score < self.config.efficiency_threshold:
            suggestions.append(Suggestion(
                type="tip",
                message=f"Your schedule efficiency is {score}%. Try optimizing session lengths and breaks.",
                action="optimize",
                priority="medium",
            ))

        return suggestions
