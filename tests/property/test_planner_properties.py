from __future__ import annotations

import random

import pytest

from config import DEFAULT_CONFIG
from factories import make_inputs
from models import Subject
from rules import RulesEngine
from scheduler import Scheduler

SEEDS = list(range(12))


def _random_subjects(rng: random.Random, count: int | None = None) -> list[Subject]:
    count = count or rng.randint(1, 7)
    return [
        Subject(
            id=f"s{i}",
            name=f"Subject {i}",
            priority=rng.choice(["high", "medium", "low"]),
            difficulty=rng.choice(["hard", "medium", "easy"]),
            hours_needed=rng.randint(5, 60),
        )
        for i in range(count)
    ]


def _run(seed: int):
    rng = random.Random(seed)
    subjects = _random_subjects(rng)
    inputs = make_inputs(
        subjects,
        days=rng.randint(1, 10),
        daily_hours=rng.randint(2, 12),
        session_length=rng.choice([30, 45, 60, 90, 120]),
        break_duration=rng.choice([5, 10, 15]),
    )
    rules = RulesEngine()
    allocations = rules.allocate_daily_hours(subjects, inputs.timeline.daily_hours)
    return inputs, allocations, Scheduler(rules).generate_schedule(inputs, allocations)


@pytest.mark.parametrize("seed", SEEDS)
def test_allocations_always_sum_to_daily_hours(seed: int) -> None:
    rng = random.Random(seed)
    subjects = _random_subjects(rng)
    daily_hours = rng.uniform(2, 12)

    allocations = RulesEngine().allocate_daily_hours(subjects, daily_hours)

    assert sum(a.allocated_hours for a in allocations) == pytest.approx(daily_hours, abs=1e-6)
    assert all(a.allocated_hours > 0 for a in allocations)


@pytest.mark.parametrize("default", [15, 30, 45, 50, 60, 75, 90, 120, 180])
def test_session_length_bounds_hold_for_any_default(default: int) -> None:
    rules = RulesEngine()
    hard = Subject(name="Hard", difficulty="hard", hours_needed=5)
    easy = Subject(name="Easy", difficulty="easy", hours_needed=5)

    assert rules.get_optimal_session_length(hard, default) <= DEFAULT_CONFIG.hard_session_cap
    assert rules.get_optimal_session_length(easy, default) >= DEFAULT_CONFIG.easy_session_floor


@pytest.mark.parametrize("threshold", [1, 2, 4, 6])
def test_long_break_kicks_in_exactly_at_threshold(threshold: int) -> None:
    rules = RulesEngine()

    assert rules.needs_long_break(threshold - 1, threshold) is False
    for count in range(threshold, threshold + 4):
        assert rules.needs_long_break(count, threshold) is True


@pytest.mark.parametrize("seed", SEEDS)
def test_slots_are_ordered_and_disjoint(seed: int) -> None:
    _, _, run = _run(seed)

    for day in run.days:
        for slot in day.slots:
            assert slot.duration > 0
            assert slot.end_minute == slot.start_minute + slot.duration
        for prev, nxt in zip(day.slots, day.slots[1:]):
            assert prev.end_minute <= nxt.start_minute


@pytest.mark.parametrize("seed", SEEDS)
def test_no_back_to_back_sessions_on_mixed_days(seed: int) -> None:
    _, _, run = _run(seed)

    for day in run.days:
        ids = [s.subject_id for s in day.study_slots()]
        if len(set(ids)) < 2:
            continue
        assert all(a != b for a, b in zip(ids, ids[1:]))


@pytest.mark.parametrize("seed", SEEDS)
def test_day_never_starts_after_end_hour(seed: int) -> None:
    _, _, run = _run(seed)
    # Lunch can push the last session back by its own length.
    latest = DEFAULT_CONFIG.day_end_hour * 60 + DEFAULT_CONFIG.lunch_duration

    for day in run.days:
        assert all(s.start_minute < latest for s in day.study_slots())
        assert len([s for s in day.break_slots() if s.break_type == "lunch"]) <= 1


@pytest.mark.parametrize("seed", SEEDS)
def test_every_day_is_present_and_dated(seed: int) -> None:
    inputs, _, run = _run(seed)

    assert len(run.days) == inputs.timeline.total_days
    for i, day in enumerate(run.days):
        assert day.day == i + 1
        assert (day.date - inputs.timeline.start_date).days == i
        assert day.total_sessions >= 1
