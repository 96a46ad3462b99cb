from __future__ import annotations
import csv
import io
from datetime import date
from typing import List, Sequence

from pydantic import TypeAdapter

from models import DaySchedule
from rules import calculate_efficiency_score

CSV_HEADER = ["Day", "Date", "Start Time", "End Time", "Subject", "Type", "Priority", "Difficulty", "Completed"]
RULE = "=" * 50
THIN_RULE = "-" * 50

_SCHEDULE_ADAPTER = TypeAdapter(List[DaySchedule])


def format_long_date(d: date) -> str:
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def _slot_subject(slot) -> str:
    return slot.subject_name if slot.type != "break" else slot.label


def schedule_to_json(schedule: Sequence[DaySchedule]) -> str:
    return _SCHEDULE_ADAPTER.dump_json(list(schedule), indent=2).decode("utf-8")


def schedule_to_csv(schedule: Sequence[DaySchedule]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for day in schedule:
        for slot in day.slots:
            is_break = slot.type == "break"
            writer.writerow([
                day.day,
                format_long_date(day.date),
                slot.start_time,
                slot.end_time,
                _slot_subject(slot),
                slot.type,
                "" if is_break else slot.priority,
                "" if is_break else slot.difficulty,
                "Yes" if getattr(slot, "completed", False) else "No",
            ])
    return buf.getvalue()


def schedule_to_text(schedule: Sequence[DaySchedule]) -> str:
    lines = ["SMART STUDY PLANNER SCHEDULE", RULE, ""]
    study_minutes = 0
    break_minutes = 0
    for day in schedule:
        lines.append(f"DAY {day.day}: {format_long_date(day.date)}")
        lines.append(f"Total Sessions: {day.total_sessions} | Study Hours: {day.total_study_hours:.1f}")
        lines.append(THIN_RULE)
        for slot in day.slots:
            status = "[x]" if getattr(slot, "completed", False) else "[ ]"
            line = f"{status} {slot.start_time} - {slot.end_time}: {_slot_subject(slot)}"
            if slot.type == "revision":
                line += " (Revision)"
            elif slot.type == "break":
                line += f" ({slot.break_type})"
            lines.append(line)
            if slot.type == "break":
                break_minutes += slot.duration
            else:
                study_minutes += slot.duration
        lines.append("")

    lines.extend([
        "",
        RULE,
        "SUMMARY",
        f"Total Study Hours: {study_minutes / 60:.1f}",
        f"Total Break Hours: {break_minutes / 60:.1f}",
        f"Efficiency Score: {calculate_efficiency_score(schedule)}%",
    ])
    return "\n".join(lines) + "\n"


def export_schedule(schedule: Sequence[DaySchedule], fmt: str = "json") -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return schedule_to_json(schedule)
    if fmt == "csv":
        return schedule_to_csv(schedule)
    if fmt == "text":
        return schedule_to_text(schedule)
    raise ValueError(f"Unsupported export format: {fmt!r}")


def import_schedule(text: str | bytes) -> List[DaySchedule]:
    """Parse a schedule written by ``export_schedule(..., "json")``."""
    return _SCHEDULE_ADAPTER.validate_json(text)
