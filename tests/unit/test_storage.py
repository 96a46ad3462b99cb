from __future__ import annotations

import json
from pathlib import Path

import pytest

from factories import make_inputs
from models import Preferences, Progress, Subject
from planner import generate_plan
from storage import StorageManager, default_data_dir, load_json, save_json


@pytest.fixture
def storage(tmp_path: Path) -> StorageManager:
    return StorageManager(tmp_path / "data")


@pytest.fixture
def plan(history_subject, math_subject):
    return generate_plan(make_inputs([history_subject, math_subject], days=3, daily_hours=4))


def test_save_json_is_atomic_and_readable(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "blob.json"

    save_json(target, {"a": 1})

    assert load_json(target) == {"a": 1}
    assert not target.with_suffix(".json.tmp").exists()


def test_corrupt_json_is_backed_up_and_reset(tmp_path: Path) -> None:
    target = tmp_path / "broken.json"
    target.write_text("{not json", encoding="utf-8")

    assert load_json(target, default={}) == {}
    assert not target.exists()
    assert target.with_suffix(".json.bak").read_text(encoding="utf-8") == "{not json"


def test_plan_round_trip(storage: StorageManager, plan) -> None:
    assert storage.load_plan() is None

    storage.save_plan(plan)
    loaded = storage.load_plan()

    assert loaded is not None
    assert [d.model_dump() for d in loaded.schedule] == [d.model_dump() for d in plan.schedule]
    assert [a.id for a in loaded.allocations] == [a.id for a in plan.allocations]
    raw = json.loads((storage.data_dir / "smartStudyPlan.json").read_text(encoding="utf-8"))
    assert raw["version"] == "1.0"
    assert "saved_at" in raw


def test_unusable_plan_loads_as_none(storage: StorageManager) -> None:
    storage.set(storage.plan_key, {"schedule": "nope"})

    assert storage.load_plan() is None


def test_preferences_default_and_round_trip(storage: StorageManager) -> None:
    assert storage.load_preferences() == Preferences()

    prefs = Preferences(subjects=[Subject(name="Law", hours_needed=12)], daily_hours=5)
    storage.save_preferences(prefs)
    loaded = storage.load_preferences()

    assert loaded.daily_hours == 5
    assert [s.name for s in loaded.subjects] == ["Law"]
    assert loaded.last_updated is not None


def test_session_completion_and_stats(storage: StorageManager, plan) -> None:
    assert storage.get_completion_stats().total == 0

    storage.save_plan(plan)
    first, second = plan.schedule[0].study_slots()[:2]
    storage.save_session_completion(first.id)
    storage.save_session_completion(second.id)
    storage.save_session_completion(second.id, completed=False)

    stats = storage.get_completion_stats()
    total = sum(day.total_sessions for day in plan.schedule)
    assert stats.completed == 1
    assert stats.total == total
    assert stats.percentage == round(100 / total)
    assert list(storage.load_progress().completed_sessions) == [first.id]


def test_export_and_import_all_data(storage: StorageManager, plan, tmp_path: Path) -> None:
    storage.save_plan(plan)
    storage.save_progress(Progress())
    storage.save_preferences(Preferences(daily_hours=3))
    dump = storage.export_all_data()

    other = StorageManager(tmp_path / "other")
    result = other.import_data(dump)

    assert result.success is True
    assert [d.model_dump() for d in other.load_plan().schedule] == [d.model_dump() for d in plan.schedule]
    assert other.load_preferences().daily_hours == 3
    assert json.loads(dump)["metadata"]["tool"] == "Smart Study Planner"


@pytest.mark.parametrize("payload", ["{oops", "[1, 2]", '{"plan": {"schedule": 3}}'])
def test_bad_imports_report_failure(storage: StorageManager, payload: str) -> None:
    result = storage.import_data(payload)

    assert result.success is False
    assert storage.load_plan() is None


def test_clear_all_data(storage: StorageManager, plan) -> None:
    storage.save_plan(plan)
    storage.save_session_completion("x")

    storage.clear_all_data()

    assert storage.load_plan() is None
    assert storage.load_progress() is None
    assert storage.get_storage_usage()["bytes"] == 0


def test_data_dir_override(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STUDY_PLANNER_DATA_DIR", str(tmp_path / "custom"))

    assert default_data_dir() == tmp_path / "custom"
    assert StorageManager().data_dir.is_dir()
