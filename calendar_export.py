from __future__ import annotations
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from icalendar import Calendar, Event as IcsEvent

from models import Plan


def _get_timezone() -> tzinfo:
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else timezone.utc


def _at(day, minute: int, tz: tzinfo) -> datetime:
    # Slots pushed back by lunch may run past midnight.
    return datetime.combine(day, time.min, tzinfo=tz) + timedelta(minutes=minute)


def plan_to_ics(plan: Plan, tz: Optional[tzinfo] = None, include_breaks: bool = False) -> bytes:
    cal = Calendar()
    cal.add("PRODID", "-//Smart Study Planner//Local//")
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", "Study Plan")

    tz = tz or _get_timezone()
    for day in plan.schedule:
        for slot in day.slots:
            is_break = slot.type == "break"
            if is_break and not include_breaks:
                continue

            event = IcsEvent()
            event.add("uid", f"{slot.id}@smart-study-planner")
            event.add("dtstart", _at(day.date, slot.start_minute, tz))
            event.add("dtend", _at(day.date, slot.end_minute, tz))
            if is_break:
                event.add("summary", slot.label)
                event.add("description", f"{slot.duration} minute {slot.break_type} break.")
            else:
                prefix = "Revision" if slot.type == "revision" else "Study"
                event.add("summary", f"{prefix}: {slot.subject_name}")
                event.add(
                    "description",
                    f"{slot.duration} minutes planned. Priority {slot.priority}, difficulty {slot.difficulty}.",
                )
                if slot.completed:
                    event.add("status", "COMPLETED")
            cal.add_component(event)

    return cal.to_ical()
