from __future__ import annotations
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from config import EXPORT_VERSION, STORAGE_KEYS, STUDY_TYPES
from models import CompletionStats, ImportResult, Plan, Preferences, Progress

logger = logging.getLogger(__name__)

APP_TITLE = "Smart Study Planner"
DATA_DIR_ENV = "STUDY_PLANNER_DATA_DIR"


def default_data_dir() -> Path:
    """
    Where the plan, preferences and progress files live.
    STUDY_PLANNER_DATA_DIR wins, then the platform's per-user data location.
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / "SmartStudyPlanner"
    if sys.platform.startswith("win"):
        roaming = os.environ.get("APPDATA")
        return (Path(roaming) if roaming else home / "AppData" / "Roaming") / "SmartStudyPlanner"
    xdg = os.environ.get("XDG_DATA_HOME")
    return (Path(xdg) if xdg else home / ".local" / "share") / "smart-study-planner"


def _backup_file(path: Path, content: str) -> None:
    try:
        backup = path.with_suffix(path.suffix + ".bak")
        backup.write_text(content, encoding="utf-8")
    except OSError:
        # If backup fails we still continue with a reset
        logger.warning("Could not back up unreadable file %s", path)


def load_json(path: Path | str, default: Any = None) -> Any:
    """
    Load JSON from path with safety:
    - If missing: return default
    - If empty or invalid: write .bak, remove the file and return default
    """
    path = Path(path)
    if not path.exists():
        return default

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError:
        logger.warning("Could not read %s", path)
        return default

    text = raw_text.strip()
    try:
        if not text:
            raise ValueError("empty file")
        return json.loads(text)
    except ValueError:
        logger.warning("Discarding unreadable JSON in %s", path)
        _backup_file(path, raw_text)
        path.unlink(missing_ok=True)
        return default


def save_json(path: Path | str, payload: Any) -> None:
    """
    Atomic JSON write: write to temp file then replace target.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = path.with_suffix(path.suffix + ".tmp")
    temp.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    temp.replace(path)


class StorageManager:
    """Key-value persistence of plan, preferences and progress; last write wins."""

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else default_data_dir()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.plan_key = STORAGE_KEYS["plan"]
        self.prefs_key = STORAGE_KEYS["preferences"]
        self.progress_key = STORAGE_KEYS["progress"]

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> Any:
        return load_json(self._path(key))

    def set(self, key: str, payload: Any) -> None:
        save_json(self._path(key), payload)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def save_plan(self, plan: Plan) -> bool:
        payload = plan.model_dump(mode="json")
        payload["saved_at"] = datetime.now().isoformat()
        payload["version"] = EXPORT_VERSION
        self.set(self.plan_key, payload)
        logger.info("Plan saved to %s", self._path(self.plan_key))
        return True

    def load_plan(self) -> Optional[Plan]:
        raw = self.get(self.plan_key)
        if not raw:
            return None
        try:
            return Plan.model_validate(raw)
        except ValidationError as e:
            logger.warning("Stored plan is not usable: %s", e)
            return None

    def save_preferences(self, prefs: Preferences) -> None:
        prefs = prefs.model_copy(update={"last_updated": datetime.now()})
        self.set(self.prefs_key, prefs.model_dump(mode="json"))

    def load_preferences(self) -> Preferences:
        raw = self.get(self.prefs_key)
        if not raw:
            return Preferences()
        try:
            return Preferences.model_validate(raw)
        except ValidationError as e:
            logger.warning("Stored preferences are not usable: %s", e)
            return Preferences()

    def save_progress(self, progress: Progress) -> bool:
        progress = progress.model_copy(update={"last_updated": datetime.now()})
        self.set(self.progress_key, progress.model_dump(mode="json"))
        return True

    def load_progress(self) -> Optional[Progress]:
        raw = self.get(self.progress_key)
        if not raw:
            return None
        try:
            return Progress.model_validate(raw)
        except ValidationError as e:
            logger.warning("Stored progress is not usable: %s", e)
            return None

    def save_session_completion(self, session_id: str, completed: bool = True) -> bool:
        progress = self.load_progress() or Progress()
        sessions = dict(progress.completed_sessions)
        if completed:
            sessions[session_id] = datetime.now()
        else:
            sessions.pop(session_id, None)
        return self.save_progress(progress.model_copy(update={"completed_sessions": sessions}))

    def get_completion_stats(self) -> CompletionStats:
        progress = self.load_progress()
        if progress is None or not progress.completed_sessions:
            return CompletionStats()

        completed = len(progress.completed_sessions)
        plan = self.load_plan()
        total = 0
        if plan is not None:
            total = sum(
                1 for day in plan.schedule for slot in day.slots if slot.type in STUDY_TYPES
            )
        return CompletionStats(
            total=total,
            completed=completed,
            percentage=round(completed / total * 100) if total else 0,
        )

    def export_all_data(self) -> str:
        data = {
            "metadata": {
                "exported_at": datetime.now().isoformat(),
                "tool": APP_TITLE,
                "version": EXPORT_VERSION,
            },
            "plan": self.get(self.plan_key),
            "progress": self.get(self.progress_key),
            "preferences": self.get(self.prefs_key),
        }
        return json.dumps(data, ensure_ascii=False, indent=2)

    def import_data(self, text: str | bytes) -> ImportResult:
        try:
            data = json.loads(text)
        except ValueError:
            return ImportResult(success=False, message="Invalid JSON format")
        if not isinstance(data, dict):
            return ImportResult(success=False, message="Invalid JSON format")

        sections = (
            ("plan", self.plan_key, Plan),
            ("progress", self.progress_key, Progress),
            ("preferences", self.prefs_key, Preferences),
        )
        for name, _, model in sections:
            if data.get(name):
                try:
                    model.model_validate(data[name])
                except ValidationError:
                    return ImportResult(success=False, message=f"Invalid {name} data")

        for name, key, _ in sections:
            if data.get(name):
                self.set(key, data[name])
        return ImportResult(success=True, message="Data imported successfully")

    def clear_all_data(self) -> bool:
        for key in (self.plan_key, self.progress_key, self.prefs_key):
            self.delete(key)
        return True

    def get_storage_usage(self) -> dict:
        total = sum(p.stat().st_size for p in self.data_dir.glob("*.json") if p.is_file())
        return {
            "bytes": total,
            "kilobytes": round(total / 1024, 2),
            "megabytes": round(total / (1024 * 1024), 2),
        }
