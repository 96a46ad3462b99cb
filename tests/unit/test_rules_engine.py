from __future__ import annotations

import logging

import pytest

from config import PlannerConfig
from factories import day_of, rest, session
from models import SchedulingContext, Subject
from rules import RulesEngine, calculate_efficiency_score, fold_adjustments, RuleAdjustment


def test_allocation_splits_daily_hours_by_weight(rules, math_subject, history_subject) -> None:
    allocations = rules.allocate_daily_hours([history_subject, math_subject], 4)

    assert [a.id for a in allocations] == ["math", "history"]
    math, history = allocations
    assert math.weight == pytest.approx(4.5)
    assert history.weight == pytest.approx(2.0)
    assert math.allocated_hours + history.allocated_hours == pytest.approx(4.0, abs=1e-9)
    assert math.allocated_hours / history.allocated_hours == pytest.approx(4.5 / 2)
    assert math.allocated_hours == pytest.approx(2.77, abs=0.01)
    assert history.allocated_hours == pytest.approx(1.23, abs=0.01)
    assert math.sessions_per_day == 2
    assert history.sessions_per_day == 1


def test_allocation_is_empty_for_no_subjects(rules) -> None:
    assert rules.allocate_daily_hours([], 6) == []


def test_zero_total_weight_falls_back_to_equal_split(math_subject, history_subject, caplog) -> None:
    engine = RulesEngine(PlannerConfig(priority_weights={"high": 0, "medium": 0, "low": 0}))

    with caplog.at_level(logging.WARNING, logger="rules"):
        allocations = engine.allocate_daily_hours([math_subject, history_subject], 6)

    assert [a.allocated_hours for a in allocations] == [3.0, 3.0]
    assert "zero weight" in caplog.text


def test_weights_do_not_mutate_input_subjects(rules, math_subject) -> None:
    weighted = rules.calculate_subject_weights([math_subject])

    assert weighted[0].weight == pytest.approx(4.5)
    assert math_subject.weight == 0
    assert not hasattr(math_subject, "adjustments")


def test_revision_need_raises_weight(rules, math_subject) -> None:
    context = SchedulingContext(days_since_last_study={"math": 3})

    weighted = rules.calculate_subject_weights([math_subject], context)

    assert weighted[0].weight == pytest.approx(3 * 1.5 * 1.5)
    assert weighted[0].adjustments.needs_revision is True


def test_consecutive_avoidance_flags_last_subject(rules, math_subject, history_subject) -> None:
    context = SchedulingContext(last_scheduled_subject="math")

    math, history = rules.calculate_subject_weights([math_subject, history_subject], context)

    assert math.adjustments.avoid_consecutive is True
    assert math.adjustments.cool_down == 2
    assert history.adjustments.avoid_consecutive is False
    assert history.adjustments.cool_down == 0


def test_fold_multiplies_weights_and_overrides_the_rest() -> None:
    folded = fold_adjustments([
        RuleAdjustment(weight_multiplier=3),
        RuleAdjustment(adapted_session_length=45, break_multiplier=1.5),
        RuleAdjustment(revision_priority=1.5, adapted_session_length=30),
        RuleAdjustment(weight_multiplier=2),
    ])

    assert folded.weight_multiplier == 6
    assert folded.revision_priority == 1.5
    assert folded.adapted_session_length == 30
    assert folded.break_multiplier == 1.5


@pytest.mark.parametrize(
    ("difficulty", "default", "expected"),
    [
        ("hard", 90, 45),
        ("hard", 30, 30),
        ("easy", 30, 60),
        ("easy", 90, 90),
        ("medium", 50, 50),
    ],
)
def test_session_length_adapts_to_difficulty(rules, difficulty, default, expected) -> None:
    subject = Subject(name="S", difficulty=difficulty, hours_needed=5)
    assert rules.get_optimal_session_length(subject, default) == expected


@pytest.mark.parametrize(
    ("difficulty", "default", "expected"),
    [
        ("hard", 10, 15),
        ("hard", 5, 8),
        ("easy", 10, 8),
        ("easy", 15, 12),
        ("medium", 10, 10),
    ],
)
def test_break_duration_scales_with_difficulty(rules, difficulty, default, expected) -> None:
    subject = Subject(name="S", difficulty=difficulty, hours_needed=5)
    assert rules.get_break_duration(subject, default) == expected


def test_long_break_threshold(rules) -> None:
    assert rules.needs_long_break(4, 4) is True
    assert rules.needs_long_break(5, 4) is True
    assert rules.needs_long_break(3, 4) is False


@pytest.mark.parametrize(
    ("priority", "difficulty", "window"),
    [
        ("low", "hard", (9, 12)),
        ("high", "easy", (9, 12)),
        ("low", "medium", (13, 17)),
        ("medium", "easy", (13, 17)),
        ("low", "easy", (18, 20)),
    ],
)
def test_preferred_hours_tiers(rules, priority, difficulty, window) -> None:
    subject = Subject(name="S", priority=priority, difficulty=difficulty, hours_needed=5)
    assert rules.get_preferred_hours(subject) == window


def test_constraints_follow_difficulty_and_last_subject(rules, math_subject, history_subject) -> None:
    context = SchedulingContext(last_scheduled_subject="math")

    constraints = rules.generate_constraints([math_subject, history_subject], context)

    assert constraints["math"].max_sessions_per_day == 3
    assert constraints["math"].min_break_between == 20
    assert constraints["math"].avoid_after == "math"
    assert constraints["math"].cool_down == 2
    assert constraints["history"].max_sessions_per_day == 4
    assert constraints["history"].min_break_between == 10
    assert constraints["history"].avoid_after is None
    assert constraints["history"].preferred_hours == (13, 17)


def test_validation_flags_each_repeat_boundary_when_alternatives_exist(rules, math_subject) -> None:
    other = Subject(id="physics", name="Physics", priority="high", difficulty="hard", hours_needed=10)
    schedule = [day_of([
        session(math_subject, 9),
        rest(10),
        session(math_subject, 10.25),
        session(other, 11.25),
    ])]

    result = rules.validate_schedule(schedule, [math_subject, other], SchedulingContext(current_day=0))

    repeats = [v for v in result.violations if v.type == "consecutive_sessions"]
    assert len(repeats) == 1
    assert repeats[0].day == 0
    assert repeats[0].slot == 2
    assert result.is_valid is False


def test_validation_counts_every_repeat_in_a_run(rules, math_subject, history_subject) -> None:
    schedule = [day_of([
        session(math_subject, 9),
        session(math_subject, 10),
        rest(11),
        session(math_subject, 11.25),
        session(history_subject, 12.25),
    ])]

    result = rules.validate_schedule(schedule, [math_subject, history_subject], SchedulingContext(current_day=0))

    repeats = [v for v in result.violations if v.type == "consecutive_sessions"]
    assert [v.slot for v in repeats] == [1, 3]
    assert {v.subject for v in repeats} == {"Math"}


def test_validation_allows_repeats_on_single_subject_days(rules, math_subject) -> None:
    schedule = [day_of([session(math_subject, 9), session(math_subject, 10), session(math_subject, 11)])]

    result = rules.validate_schedule(schedule, [math_subject], SchedulingContext(current_day=0))

    assert [v for v in result.violations if v.type == "consecutive_sessions"] == []
    assert result.is_valid is True
    assert result.stats["math"].sessions == 3
    assert result.stats["math"].daily_sessions == {0: 3}


def test_validation_flags_sessions_outside_preferred_window(rules, art_subject) -> None:
    schedule = [day_of([session(art_subject, 9), session(art_subject, 18)])]

    result = rules.validate_schedule(schedule, [art_subject], SchedulingContext(current_day=0))

    prefs = [v for v in result.violations if v.type == "time_preference"]
    assert len(prefs) == 1
    assert prefs[0].slot == 0
    assert "(18:00-20:00)" in prefs[0].message


def test_validation_reports_subjects_needing_revision(rules, math_subject) -> None:
    physics = Subject(id="physics", name="Physics", priority="high", difficulty="hard", hours_needed=10)
    schedule = [day_of([session(math_subject, 9), session(physics, 10)], 0)]
    schedule += [day_of([session(physics, 9, day_index=i)], i) for i in range(1, 5)]

    result = rules.validate_schedule(schedule, [math_subject, physics], SchedulingContext(current_day=4))

    revision = [v for v in result.violations if v.type == "revision_needed"]
    assert len(revision) == 1
    assert revision[0].subject == "Math"
    assert revision[0].days_since_last == 4


def test_suggestions_map_violation_kinds(rules, math_subject, art_subject) -> None:
    schedule = [day_of([session(math_subject, 9), session(math_subject, 10), session(art_subject, 11)])]
    validation = rules.validate_schedule(schedule, [math_subject, art_subject], SchedulingContext(current_day=0))

    suggestions = rules.generate_suggestions(validation.violations, schedule)

    actions = [s.action for s in suggestions]
    assert "reschedule" in actions
    assert "consider_reschedule" in actions
    # No breaks at all: efficiency is 0.
    assert actions[-1] == "optimize"
    assert "increase_breaks" not in actions


def test_suggestions_add_break_tip_for_busy_plans(rules, math_subject) -> None:
    schedule = [
        day_of([session(math_subject, 9, 52, i), rest(9 + 52 / 60, 17, i)], i)
        for i in range(7)
    ]

    suggestions = rules.generate_suggestions([], schedule)

    assert [s.action for s in suggestions] == ["increase_breaks"]


@pytest.mark.parametrize(
    ("study", "breaks", "expected"),
    [
        (0, 10, 0),
        (52, 17, 100),
        (60, 10, 0),
        (100, 30, 83),
    ],
)
def test_efficiency_score(math_subject, study, breaks, expected) -> None:
    slots = []
    if study:
        slots.append(session(math_subject, 9, study))
    if breaks:
        slots.append(rest(12, breaks))

    assert calculate_efficiency_score([day_of(slots)]) == expected
