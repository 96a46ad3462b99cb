from __future__ import annotations
import logging
import streamlit as st
import pandas as pd
from datetime import date, timedelta

from calendar_export import plan_to_ics
from errors import PlannerError
from exports import export_schedule, format_long_date
from inputs import build_inputs, default_subjects, validate_inputs
from models import Plan, Preferences, Progress, Subject
from pdf_export import plan_to_pdf
from planner import apply_progress, completion_rate, generate_plan
from storage import StorageManager

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

PRIORITIES = ["high", "medium", "low"]
DIFFICULTIES = ["easy", "medium", "hard"]
SUGGESTION_ICONS = {"warning": "⚠️", "info": "ℹ️", "important": "❗", "tip": "💡"}

st.set_page_config(page_title="Smart Study Planner", page_icon="📚", layout="wide")


def _ensure_session_state() -> StorageManager:
    if "storage" not in st.session_state:
        st.session_state.storage = StorageManager()
    storage: StorageManager = st.session_state.storage

    if "prefs" not in st.session_state:
        prefs = storage.load_preferences()
        if not prefs.subjects:
            prefs.subjects = default_subjects()
        st.session_state.prefs = prefs

    if "plan" not in st.session_state:
        st.session_state.plan = storage.load_plan()
        if st.session_state.plan is not None:
            _queue_toast("Loaded saved study plan.")

    if "day_index" not in st.session_state:
        st.session_state.day_index = 0

    return storage


def _current_plan() -> Plan | None:
    plan = st.session_state.plan
    if plan is None:
        return None
    progress = storage.load_progress()
    return apply_progress(plan, progress) if progress else plan


def _queue_toast(message: str) -> None:
    st.session_state.toast_message = message


def _flush_toast() -> None:
    message = st.session_state.pop("toast_message", None)
    if message:
        st.toast(message)


def render_setup(prefs: Preferences) -> None:
    st.header("Setup")

    st.subheader("Timeline")
    today = date.today()
    col1, col2, col3 = st.columns(3)
    with col1:
        start_date = st.date_input("Start date", value=prefs.start_date or today)
    with col2:
        end_date = st.date_input("End date", value=prefs.end_date or today + timedelta(days=13))
    with col3:
        daily_hours = st.slider("Daily study hours", 2, 12, prefs.daily_hours)

    col4, col5 = st.columns(2)
    with col4:
        session_length = st.selectbox(
            "Session length (minutes)", [25, 45, 60, 90, 120],
            index=[25, 45, 60, 90, 120].index(prefs.session_length)
            if prefs.session_length in (25, 45, 60, 90, 120) else 2,
        )
    with col5:
        break_duration = st.selectbox(
            "Break duration (minutes)", [5, 10, 15, 20],
            index=[5, 10, 15, 20].index(prefs.break_duration)
            if prefs.break_duration in (5, 10, 15, 20) else 1,
        )

    st.divider()
    st.subheader("Subjects")
    rows = [
        {
            "id": s.id,
            "Name": s.name,
            "Priority": s.priority,
            "Difficulty": s.difficulty,
            "Hours needed": s.hours_needed,
        }
        for s in prefs.subjects
    ]
    df = pd.DataFrame(rows, columns=["id", "Name", "Priority", "Difficulty", "Hours needed"]).set_index("id")
    edited = st.data_editor(
        df,
        hide_index=True,
        num_rows="dynamic",
        use_container_width=True,
        column_config={
            "Name": st.column_config.TextColumn("Name"),
            "Priority": st.column_config.SelectboxColumn("Priority", options=PRIORITIES),
            "Difficulty": st.column_config.SelectboxColumn("Difficulty", options=DIFFICULTIES),
            "Hours needed": st.column_config.NumberColumn(
                "Hours needed", min_value=1, max_value=100, step=1
            ),
        },
        key="subjects_editor",
    )

    subjects = []
    existing = {s.id: s for s in prefs.subjects}
    for row in edited.reset_index().to_dict("records"):
        name = str(row.get("Name") or "").strip()
        hours = row.get("Hours needed")
        if not name or hours is None or pd.isna(hours) or float(hours) <= 0:
            continue
        previous = existing.get(row.get("id"))
        values = {
            "name": name,
            "priority": row.get("Priority") or "medium",
            "difficulty": row.get("Difficulty") or "medium",
            "hours_needed": float(hours),
        }
        if previous is not None:
            subjects.append(previous.model_copy(update=values))
        else:
            subjects.append(Subject(**values))

    prefs = prefs.model_copy(update={
        "subjects": subjects,
        "start_date": start_date,
        "end_date": end_date,
        "daily_hours": daily_hours,
        "session_length": session_length,
        "break_duration": break_duration,
    })
    st.session_state.prefs = prefs

    inputs = build_inputs(
        start_date, end_date, daily_hours, subjects,
        session_length=session_length,
        break_duration=break_duration,
        config=prefs.config,
    )
    m1, m2, m3 = st.columns(3)
    m1.metric("Total days", inputs.timeline.total_days)
    m2.metric("Subjects", len(inputs.subjects))
    m3.metric("Hours needed", f"{sum(s.hours_needed for s in inputs.subjects):g}")

    if st.button("Generate study plan", type="primary"):
        validation = validate_inputs(inputs)
        if not validation.is_valid:
            st.error("Please fix errors: " + ", ".join(validation.errors))
            return
        storage.save_preferences(prefs)
        try:
            plan = generate_plan(inputs, config=prefs.config)
        except PlannerError as e:
            st.error(f"Error generating plan: {e}")
            return
        storage.save_plan(plan)
        storage.save_progress(Progress())
        st.session_state.plan = plan
        st.session_state.day_index = 0
        _queue_toast("Study plan generated.")
        st.rerun()


def render_plan(plan: Plan | None) -> None:
    st.header("Plan")
    if plan is None:
        st.info("Generate a plan on the Setup page first.")
        return

    total_days = len(plan.schedule)
    nav_prev, nav_label, nav_next = st.columns([1, 3, 1])
    if nav_prev.button("◀ Previous", disabled=st.session_state.day_index <= 0):
        st.session_state.day_index -= 1
        st.rerun()
    if nav_next.button("Next ▶", disabled=st.session_state.day_index >= total_days - 1):
        st.session_state.day_index += 1
        st.rerun()

    day = plan.schedule[min(st.session_state.day_index, total_days - 1)]
    nav_label.subheader(f"Day {day.day} of {total_days}: {format_long_date(day.date)}")
    st.caption(f"{day.total_sessions} sessions | {day.total_study_hours:.1f} study hours")

    if not day.slots:
        st.info("Nothing scheduled for this day.")
    for slot in day.slots:
        left, right = st.columns([4, 1])
        if slot.type == "break":
            left.write(f"☕ {slot.start_time} - {slot.end_time}: {slot.label}")
            continue
        tag = " (Revision)" if slot.type == "revision" else ""
        left.write(
            f"{'✅' if slot.completed else '⬜'} {slot.start_time} - {slot.end_time}: "
            f"**{slot.subject_name}**{tag} · {slot.priority} priority · {slot.difficulty}"
        )
        label = "Undo" if slot.completed else "Complete"
        if right.button(label, key=f"complete_{slot.id}"):
            storage.save_session_completion(slot.id, not slot.completed)
            _queue_toast("Session marked as complete!" if not slot.completed else "Session marked as pending")
            st.rerun()

    st.divider()
    col_s, col_e = st.columns([3, 1])
    with col_s:
        st.subheader("Suggestions")
        if not plan.suggestions:
            st.success("No issues found in this plan.")
        for s in plan.suggestions:
            st.write(f"{SUGGESTION_ICONS.get(s.type, '')} {s.message}")
    with col_e:
        st.metric("Efficiency score", f"{plan.summary.efficiency_score}%")
        st.metric("Completion", f"{completion_rate(plan)}%")


def render_progress(plan: Plan | None) -> None:
    st.header("Progress")
    if plan is None:
        st.info("No plan yet.")
        return

    stats = storage.get_completion_stats()
    a, b, c = st.columns(3)
    a.metric("Sessions completed", f"{stats.completed} / {stats.total}")
    b.metric("Completion rate", f"{completion_rate(plan)}%")
    c.metric("Planned study hours", plan.summary.total_study_hours)

    rows = []
    for alloc in plan.allocations:
        rows.append({
            "Subject": alloc.name,
            "Priority": alloc.priority,
            "Difficulty": alloc.difficulty,
            "Weight": round(alloc.weight, 2),
            "Hours/day": round(alloc.allocated_hours, 2),
            "Done (h)": round(alloc.hours_completed, 1),
            "Needed (h)": alloc.hours_needed,
            "Completion %": round(min(100.0, alloc.hours_completed / alloc.hours_needed * 100), 1),
        })
    df = pd.DataFrame(rows)
    st.dataframe(
        df,
        use_container_width=True,
        column_config={
            "Completion %": st.column_config.ProgressColumn(
                "Completion %", min_value=0, max_value=100, format="%.1f%%"
            )
        },
    )

    with st.expander("Subject distribution (hours)", expanded=False):
        st.bar_chart(pd.Series(plan.summary.subject_distribution, name="hours"))

    with st.expander("Rule violations", expanded=False):
        if not plan.validation.violations:
            st.info("No violations.")
        else:
            st.dataframe(
                [v.model_dump() for v in plan.validation.violations],
                use_container_width=True,
            )


def render_export(plan: Plan | None) -> None:
    st.header("Export")
    if plan is None:
        st.info("Generate a plan before exporting.")
    else:
        fmt = st.radio("Format", ["json", "csv", "text"], horizontal=True)
        content = export_schedule(plan.schedule, fmt)
        st.code(content[:4000], language="json" if fmt == "json" else None)
        ext = {"json": "json", "csv": "csv", "text": "txt"}[fmt]
        stamp = date.today().isoformat()
        st.download_button(
            f"Download {fmt.upper()}",
            data=content,
            file_name=f"study-plan-{stamp}.{ext}",
        )
        st.download_button(
            "Download ICS",
            data=plan_to_ics(plan),
            file_name=f"study-plan-{stamp}.ics",
            mime="text/calendar",
        )
        st.download_button(
            "Download PDF",
            data=plan_to_pdf(plan),
            file_name=f"study-plan-{stamp}.pdf",
            mime="application/pdf",
        )

    st.divider()
    st.subheader("Backup")
    st.download_button(
        "Download backup",
        data=storage.export_all_data(),
        file_name=f"study-planner-backup-{date.today().isoformat()}.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Restore backup (.json)", type=["json"], key="backup_upload")
    if uploaded and st.button("Import backup"):
        result = storage.import_data(uploaded.read())
        if result.success:
            for key in ("prefs", "plan"):
                st.session_state.pop(key, None)
            _queue_toast(result.message)
            st.rerun()
        else:
            st.error(result.message)


def render_settings(prefs: Preferences) -> None:
    st.header("Settings")
    config = prefs.config
    st.caption(
        f"Study day runs {config.day_start_hour}:00 - {config.day_end_hour}:00. "
        f"Avoid studying after {config.avoid_late_night_hour}:00."
    )

    with st.expander("Scheduling rules", expanded=False):
        max_sessions = st.number_input(
            "Sessions before a long break", 1, 10, config.max_sessions_without_long_break
        )
        long_break = st.number_input("Long break (minutes)", 5, 120, config.long_break_duration, 5)
        revision = st.number_input("Revise after (days)", 1, 14, config.revision_frequency)
        day_start, day_end = st.slider(
            "Study day", 0, 24, (config.day_start_hour, config.day_end_hour)
        )

    if st.button("Save settings", type="primary"):
        new_config = config.model_copy(update={
            "max_sessions_without_long_break": int(max_sessions),
            "long_break_duration": int(long_break),
            "revision_frequency": int(revision),
            "day_start_hour": int(day_start),
            "day_end_hour": int(day_end),
        })
        prefs = prefs.model_copy(update={"config": new_config})
        st.session_state.prefs = prefs
        storage.save_preferences(prefs)
        st.toast("Settings saved.")

    usage = storage.get_storage_usage()
    st.caption(f"Stored data: {usage['kilobytes']} KB in {storage.data_dir}")

    if st.button("Reset everything"):

        @st.dialog("Reset the entire plan?")
        def _confirm_reset() -> None:
            st.write("This will clear your plan, progress and subjects.")
            if st.button("Reset", type="primary"):
                storage.clear_all_data()
                for key in ("prefs", "plan", "day_index"):
                    st.session_state.pop(key, None)
                _queue_toast("Plan reset. Ready to create a new study schedule!")
                st.rerun()

        _confirm_reset()


storage = _ensure_session_state()
prefs: Preferences = st.session_state.prefs
plan = _current_plan()

st.title("Smart Study Planner")
st.caption("Rule-based study timetable with revision tracking and schedule feedback.")
_flush_toast()

with st.sidebar:
    st.header("Navigate")
    pages = ["Setup", "Plan", "Progress", "Export", "Settings"]
    page = st.radio("Page", pages, key="nav_page", label_visibility="collapsed")
    st.caption("Workflow: Setup -> Plan -> Progress")

if page == "Setup":
    render_setup(prefs)
elif page == "Plan":
    render_plan(plan)
elif page == "Progress":
    render_progress(plan)
elif page == "Export":
    render_export(plan)
elif page == "Settings":
    render_settings(prefs)
