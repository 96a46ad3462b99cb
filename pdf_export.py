from __future__ import annotations
from io import BytesIO
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from exports import format_long_date
from models import Plan


def plan_to_pdf(plan: Plan) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=40,
        rightMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    styles = getSampleStyleSheet()
    elems = []

    if plan.schedule:
        first, last = plan.schedule[0].date, plan.schedule[-1].date
        title = f"Study Plan: {first.isoformat()} - {last.isoformat()}"
    else:
        title = "Study Plan"
    elems.append(Paragraph(title, styles["Title"]))
    elems.append(Spacer(1, 10))

    summary = plan.summary
    elems.append(Paragraph(
        f"Study: {summary.total_study_hours}h | Breaks: {summary.total_break_hours}h "
        f"| Sessions: {summary.total_sessions} | Efficiency: {summary.efficiency_score}%",
        styles["Normal"],
    ))
    elems.append(Paragraph(
        f"Daily average: {summary.daily_averages.sessions} sessions, "
        f"{summary.daily_averages.study_hours}h",
        styles["Normal"],
    ))
    elems.append(Spacer(1, 12))

    if plan.allocations:
        elems.append(Paragraph("Allocations", styles["Heading3"]))
        alloc_data = [["Subject", "Priority", "Difficulty", "Weight", "Hours/day", "Needed", "Done"]]
        for a in plan.allocations:
            alloc_data.append([
                a.name,
                a.priority,
                a.difficulty,
                f"{a.weight:.2f}",
                f"{a.allocated_hours:.2f}",
                f"{a.hours_needed:g}",
                f"{a.hours_completed:.1f}",
            ])
        alloc_table = Table(alloc_data, hAlign="LEFT")
        alloc_table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
        ]))
        elems.append(alloc_table)
        elems.append(Spacer(1, 12))

    if plan.suggestions:
        elems.append(Paragraph("Suggestions", styles["Heading3"]))
        for s in plan.suggestions:
            elems.append(Paragraph(f"[{s.priority}] {s.message}", styles["Normal"]))
        elems.append(Spacer(1, 12))

    for day in plan.schedule:
        elems.append(Paragraph(f"Day {day.day}: {format_long_date(day.date)}", styles["Heading3"]))
        table_data: List[list] = [["Time", "Subject", "Type", "Done"]]
        for slot in day.slots:
            if slot.type == "break":
                table_data.append([f"{slot.start_time} - {slot.end_time}", slot.label, slot.break_type, ""])
            else:
                table_data.append([
                    f"{slot.start_time} - {slot.end_time}",
                    slot.subject_name,
                    slot.type,
                    "Yes" if slot.completed else "No",
                ])
        table_data.append(["Total", f"{day.total_sessions} sessions", f"{day.total_study_hours:.1f}h", ""])

        table = Table(table_data, hAlign="LEFT", colWidths=[140, 180, 70, 50])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("BACKGROUND", (0, -1), (-1, -1), colors.whitesmoke),
        ]))
        elems.append(table)
        elems.append(Spacer(1, 8))

    doc.build(elems)
    return buf.getvalue()
