from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Sequence

from config import DEFAULT_CONFIG, PRIORITY_ORDER, PlannerConfig
from errors import InvalidInputError
from models import (
    Allocation,
    BreakSlot,
    DailyAverages,
    DaySchedule,
    PlanInputs,
    SchedulingContext,
    SessionSettings,
    StudySlot,
    Summary,
)
from rules import RulesEngine, efficiency_from_minutes

logger = logging.getLogger(__name__)

BREAK_LABELS = {"regular": "Break", "long": "Long Break", "lunch": "Lunch Break"}


@dataclass
class ScheduleRun:
    days: List[DaySchedule]
    context: SchedulingContext
    minutes_scheduled: Dict[str, int] = field(default_factory=dict)


class Scheduler:
    """
    Greedy day-by-day timetable builder.

    Holds no state between runs: every call to ``generate_schedule`` starts
    from a fresh ``SchedulingContext`` and hours ledger.
    """

    def __init__(self, rules: RulesEngine, config: PlannerConfig | None = None):
        self.rules = rules
        self.config = config or rules.config or DEFAULT_CONFIG

    def generate_schedule(self, inputs: PlanInputs, allocations: Sequence[Allocation]) -> ScheduleRun:
        timeline = inputs.timeline
        if not allocations:
            raise InvalidInputError("Cannot build a schedule without subjects.")
        if timeline.total_days < 1:
            raise InvalidInputError(f"Timeline must cover at least one day, got {timeline.total_days}.")
        if timeline.daily_hours <= 0:
            raise InvalidInputError(f"Daily hours must be positive, got {timeline.daily_hours}.")

        settings = inputs.session_settings
        context = SchedulingContext(default_session_length=settings.session_length)
        minutes_scheduled = {a.id: 0 for a in allocations}
        days: List[DaySchedule] = []

        for day_index in range(timeline.total_days):
            todays = self.select_todays_subjects(allocations, day_index, context, minutes_scheduled)
            todays = self.order_subjects(todays, context)
            slots = self.fill_day(day_index, todays, timeline.daily_hours, settings, context, minutes_scheduled)
            slots = self.insert_lunch_break(slots, day_index)
            day = DaySchedule(
                day=day_index + 1,
                date=timeline.start_date + timedelta(days=day_index),
                slots=slots,
            )
            days.append(day)
            self.update_context_after_day(day_index, day, context)
            logger.debug(
                "Day %d: %d sessions, %.2f study hours",
                day.day, day.total_sessions, day.total_study_hours,
            )

        return ScheduleRun(days=days, context=context, minutes_scheduled=minutes_scheduled)

    def _needs_revision(self, subject_id: str, context: SchedulingContext) -> bool:
        return context.days_since_last_study.get(subject_id, 0) >= self.config.revision_frequency

    def select_todays_subjects(
        self,
        allocations: Sequence[Allocation],
        day_index: int,
        context: SchedulingContext,
        minutes_scheduled: Dict[str, int],
    ) -> List[Allocation]:
        revision = [a for a in allocations if self._needs_revision(a.id, context)]
        if revision:
            return revision[: self.config.max_revision_subjects]

        available = [
            a for a in allocations
            if minutes_scheduled.get(a.id, 0) < a.allocated_hours * 60 * (day_index + 1)
        ]
        if not available:
            available = list(allocations)

        count = len(available)
        per_day = min(count, self.config.max_subjects_per_day)
        # Cyclic window so every subject surfaces over the run.
        offset = (day_index * per_day) % count
        return [available[(offset + i) % count] for i in range(per_day)]

    def order_subjects(self, subjects: Sequence[Allocation], context: SchedulingContext) -> List[Allocation]:
        return sorted(
            subjects,
            key=lambda s: (
                not self._needs_revision(s.id, context),
                -PRIORITY_ORDER.get(s.priority, 0),
            ),
        )

    def fill_day(
        self,
        day_index: int,
        subjects: Sequence[Allocation],
        daily_hours: float,
        settings: SessionSettings,
        context: SchedulingContext,
        minutes_scheduled: Dict[str, int],
    ) -> List:
        slots: List = []
        if not subjects:
            return slots

        clock = self.config.day_start_hour * 60
        day_end = self.config.day_end_hour * 60
        # Budget in whole minutes.
        remaining = round(daily_hours * 60)
        last_subject_id = None
        index = 0
        context.consecutive_sessions = 0
        context.session_count_today = 0

        while remaining > 0 and clock < day_end:
            subject = subjects[index % len(subjects)]
            if subject.id == last_subject_id and len(subjects) > 1:
                index += 1
                continue

            length = self.rules.get_optimal_session_length(subject, settings.session_length)
            break_length = self.rules.get_break_duration(subject, settings.break_duration)
            slots.append(self._session_slot(subject, clock, length, day_index, context))

            clock += length
            remaining -= length
            minutes_scheduled[subject.id] = minutes_scheduled.get(subject.id, 0) + length
            context.consecutive_sessions += 1
            context.session_count_today += 1
            last_subject_id = subject.id

            if remaining > 0:
                if self.rules.needs_long_break(
                    context.consecutive_sessions, self.config.max_sessions_without_long_break
                ):
                    slots.append(self._break_slot(clock, settings.long_break_duration, "long", day_index))
                    clock += settings.long_break_duration
                    context.consecutive_sessions = 0
                elif break_length > 0:
                    slots.append(self._break_slot(clock, break_length, "regular", day_index))
                    clock += break_length

            index += 1

        return slots

    def insert_lunch_break(self, slots: List, day_index: int) -> List:
        """
        Place lunch at the first slot starting at or after noon, pushing the rest back.
        A break sitting at that spot is replaced by lunch.
        """
        noon = self.config.lunch_start_hour * 60
        if not slots or slots[-1].end_minute <= noon:
            return slots

        position = next((i for i, s in enumerate(slots) if s.start_minute >= noon), None)
        if position is None:
            return slots
        start = slots[position].start_minute
        if start >= self.config.lunch_latest_hour * 60:
            return slots

        following = slots[position:]
        if isinstance(following[0], BreakSlot):
            following = following[1:]

        duration = self.config.lunch_duration
        lunch = BreakSlot(
            id=f"lunch_{day_index}",
            start_minute=start,
            end_minute=start + duration,
            duration=duration,
            day=day_index + 1,
            break_type="lunch",
            label=BREAK_LABELS["lunch"],
        )
        shift = lunch.end_minute - following[0].start_minute if following else 0
        return slots[:position] + [lunch] + [s.shifted(shift) for s in following]

    def update_context_after_day(self, day_index: int, day: DaySchedule, context: SchedulingContext) -> None:
        studied = []
        for slot in day.study_slots():
            if slot.subject_id not in studied:
                studied.append(slot.subject_id)
            context.last_scheduled_subject = slot.subject_id

        for subject_id in list(context.days_since_last_study):
            if subject_id not in studied:
                context.days_since_last_study[subject_id] += 1
        for subject_id in studied:
            context.days_since_last_study[subject_id] = 0

        context.current_day = day_index

    def _session_slot(
        self,
        subject: Allocation,
        start: int,
        duration: int,
        day_index: int,
        context: SchedulingContext,
    ) -> StudySlot:
        return StudySlot(
            id=f"session_{subject.id}_{day_index}_{start}",
            type="revision" if self._needs_revision(subject.id, context) else "study",
            subject_id=subject.id,
            subject_name=subject.name,
            priority=subject.priority,
            difficulty=subject.difficulty,
            start_minute=start,
            end_minute=start + duration,
            duration=duration,
            day=day_index + 1,
        )

    def _break_slot(self, start: int, duration: int, break_type: str, day_index: int) -> BreakSlot:
        return BreakSlot(
            id=f"break_{day_index}_{start}",
            start_minute=start,
            end_minute=start + duration,
            duration=duration,
            day=day_index + 1,
            break_type=break_type,
            label=BREAK_LABELS[break_type],
        )

    def summarize(self, days: Sequence[DaySchedule], total_days: int) -> Summary:
        study_minutes = 0
        break_minutes = 0
        sessions = 0
        distribution: Dict[str, float] = {}
        for day in days:
            for slot in day.study_slots():
                study_minutes += slot.duration
                sessions += 1
                distribution[slot.subject_name] = distribution.get(slot.subject_name, 0) + slot.duration / 60
            for slot in day.break_slots():
                break_minutes += slot.duration

        total_days = max(1, total_days)
        study_hours = study_minutes / 60
        return Summary(
            total_study_hours=round(study_hours, 1),
            total_break_hours=round(break_minutes / 60, 1),
            total_sessions=sessions,
            subject_distribution={name: round(hours, 2) for name, hours in distribution.items()},
            daily_averages=DailyAverages(
                sessions=round(sessions / total_days, 1),
                study_hours=round(study_hours / total_days, 1),
            ),
            efficiency_score=efficiency_from_minutes(study_minutes, break_minutes),
        )
