from __future__ import annotations

import dataclasses
import html
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from ics import Calendar, Event
from ics.grammar.parse import ContentLine

from course_schedule.dates import parse_iso_date
from course_schedule.models import CourseSchedule, ScheduleEntry

log = logging.getLogger(__name__)

ICS_PRODID = "-//course-schedule//Course Schedule//EN"
ICS_UID_DOMAIN = "course-schedule"


def _ics_local(day: str, hhmm: str) -> str:
    return f"{day.replace('-', '')}T{hhmm.replace(':', '')}00"


def entry_summary(entry: ScheduleEntry, course_code: str) -> str:
    if entry.lecture is not None:
        return entry.lecture.display_title
    if entry.lab is not None:
        return entry.lab.display_title
    return f"{course_code} Class".strip()


def entry_uid(entry: ScheduleEntry) -> str:
    return f"{entry.date}-{entry.section_id}-{entry.meeting_number}@{ICS_UID_DOMAIN}"


def _entry_event(entry: ScheduleEntry, course_code: str, stamp: str | None) -> Event:
    event = Event(uid=entry_uid(entry), name=entry_summary(entry, course_code))
    if entry.meeting.location:
        event.location = entry.meeting.location
    if entry.notes:
        event.description = entry.notes
    # ics stores begin/end as UTC instants; floating local times go in as raw lines.
    start = _ics_local(entry.date, entry.meeting.start_time)
    end = _ics_local(entry.date, entry.meeting.end_time)
    event.extra.append(ContentLine(name="DTSTART", value=start))
    event.extra.append(ContentLine(name="DTEND", value=end))
    if stamp:
        event.extra.append(ContentLine(name="DTSTAMP", value=stamp))
    return event


def to_icalendar(
    schedule: CourseSchedule,
    section_id: str | None = None,
    *,
    dtstamp: datetime | None = None,
) -> str:
    """Render non-cancelled entries as VEVENTs with floating local times.

    Cancelled entries are left out entirely. ``DTSTAMP`` is only written when
    ``dtstamp`` is given, which keeps the output reproducible by default.
    """
    config = schedule.config
    calendar = Calendar(creator=ICS_PRODID)
    calendar.extra.append(ContentLine(name="X-WR-CALNAME", value=config.course_code))
    calendar.extra.append(ContentLine(name="X-WR-TIMEZONE", value=config.timezone))
    stamp = (
        dtstamp.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        if dtstamp is not None
        else None
    )

    for entry in schedule.entries_for(section_id):
        if entry.is_cancelled:
            continue
        calendar.events.add(_entry_event(entry, config.course_code, stamp))

    return "".join(calendar.serialize_iter())


def _md_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def to_markdown_table(schedule: CourseSchedule, section_id: str | None = None) -> str:
    config = schedule.config
    lines = [
        "# Course Schedule",
        "",
        f"**Course:** {config.course_code} - {config.course_title}",
        "",
        f"**Semester:** {config.semester}",
        "",
        "| # | Date | Day | Topic | Notes |",
        "|---|------|-----|-------|-------|",
    ]
    for entry in schedule.entries_for(section_id):
        day = parse_iso_date(entry.date)
        if entry.lecture is not None:
            topic = entry.lecture.display_title
        elif entry.lab is not None:
            topic = entry.lab.display_title
        else:
            topic = ""
        notes = entry.notes or ""
        if entry.is_cancelled:
            topic = f"~~{topic or 'Class'}~~"
            notes = entry.holiday.name if entry.holiday and entry.holiday.name else "No class"
        lines.append(
            f"| {entry.meeting_number} | {day:%b} {day.day} | {entry.day_of_week[:3]} "
            f"| {_md_cell(topic)} | {_md_cell(notes)} |"
        )
    return "\n".join(lines) + "\n"


def to_json(schedule: CourseSchedule) -> str:
    return json.dumps(dataclasses.asdict(schedule), indent=2) + "\n"


def _row_status(day: date, today: date) -> str:
    if day < today:
        return "past-row"
    if day == today:
        return "current-row"
    return "upcoming-row"


def render_schedule_html(
    schedule: CourseSchedule,
    *,
    section_id: str | None = None,
    today: date | None = None,
    page_title: str = "Course Schedule",
) -> str:
    config = schedule.config
    today = today or date.today()
    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%SZ")
    cell_style = "border:1px solid #ccc;padding:8px;vertical-align:top;"
    header_style = (
        "border:1px solid #ccc;padding:8px;vertical-align:top;background:#f5f5f5;"
    )

    holiday_items = []
    for holiday in schedule.important_dates.holidays:
        span = holiday.date if not holiday.end_date else f"{holiday.date} to {holiday.end_date}"
        holiday_items.append(f"<li>{html.escape(f'{holiday.name}: {span}')}</li>")
    holiday_html = (
        "<ul>" + "".join(holiday_items) + "</ul>" if holiday_items else "<p>None</p>"
    )

    rows_html = []
    for entry in schedule.entries_for(section_id):
        row_classes = [_row_status(parse_iso_date(entry.date), today)]
        if entry.is_cancelled:
            row_classes.append("cancelled-row")

        if entry.lecture is not None:
            lecture_html = f"<strong>{html.escape(entry.lecture.display_title)}</strong>"
            if entry.lecture.topics:
                lecture_html += "<br/>" + html.escape(", ".join(entry.lecture.topics))
        else:
            lecture_html = "&nbsp;"
        if entry.lab is not None:
            lab_title = html.escape(entry.lab.display_title)
            if entry.lab.url:
                href = html.escape(entry.lab.url, quote=True)
                lab_html = f'<a href="{href}" target="_blank" rel="noopener noreferrer">{lab_title}</a>'
            else:
                lab_html = lab_title
        else:
            lab_html = "&nbsp;"
        if entry.is_cancelled:
            label = entry.holiday.name if entry.holiday and entry.holiday.name else "No class"
            notes_html = f"<em>{html.escape(label)}</em>"
            lecture_html = f"<s>{lecture_html}</s>" if entry.lecture is not None else lecture_html
        else:
            notes_html = html.escape(entry.notes) if entry.notes else "&nbsp;"

        cells = [
            str(entry.meeting_number),
            html.escape(entry.date),
            entry.day_of_week[:3],
            html.escape(entry.section_name),
            lecture_html,
            lab_html,
            notes_html,
        ]
        rows_html.append(
            f'<tr class="{" ".join(row_classes)}">'
            + "".join(f'<td style="{cell_style}">{cell}</td>' for cell in cells)
            + "</tr>"
        )

    headers = "".join(
        f'<th style="{header_style}">{label}</th>'
        for label in ("#", "Date", "Day", "Section", "Lecture", "Lab", "Notes")
    )

    return f"""<!-- course-schedule-generated:start -->
<style>
.course-schedule {{
  --line: #cfd6dd;
  --past-bg: #f7f8fa;
  --current-bg: #e8f3ff;
  --upcoming-bg: #ffffff;
  --cancelled-bg: #e6f7ea;
  font-family: Arial, sans-serif;
  font-size: 14px;
}}
.course-schedule table {{ border-collapse: collapse; width: 100%; border: 1px solid var(--line); }}
.course-schedule .past-row td {{ background: var(--past-bg); }}
.course-schedule .current-row td {{ background: var(--current-bg); }}
.course-schedule .upcoming-row td {{ background: var(--upcoming-bg); }}
.course-schedule .cancelled-row td {{
  background: var(--cancelled-bg);
  border-top: 2px solid #91c49b !important;
  border-bottom: 2px solid #91c49b !important;
}}
</style>
<div class="course-schedule">
  <h2>{html.escape(page_title)}</h2>
  <p><strong>Course:</strong> {html.escape(config.course_code)} - {html.escape(config.course_title)} ({html.escape(config.semester)})</p>
  <p><strong>Generated:</strong> {generated_at}</p>
  <p><strong>Term:</strong> {config.start_date} to {config.end_date} ({html.escape(config.timezone)})</p>
  <h3>Holidays</h3>
  {holiday_html}
  <h3>Schedule</h3>
  <table>
    <thead>
      <tr>{headers}</tr>
    </thead>
    <tbody>
      {''.join(rows_html)}
    </tbody>
  </table>
</div>
<!-- course-schedule-generated:end -->
"""


def write_schedule_artifacts(
    schedule: CourseSchedule,
    output_dir: str | Path,
) -> dict[str, Path]:
    output_root = Path(output_dir)
    output_root.mkdir(parents=True, exist_ok=True)
    outputs = {
        "schedule_json": (output_root / "schedule.json", to_json(schedule)),
        "schedule_ics": (output_root / "schedule.ics", to_icalendar(schedule)),
        "schedule_markdown": (output_root / "schedule.md", to_markdown_table(schedule)),
        "schedule_html": (output_root / "schedule.html", render_schedule_html(schedule)),
    }
    paths: dict[str, Path] = {}
    for key, (path, content) in outputs.items():
        # newline="" keeps the CRLF line endings the calendar format requires.
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        paths[key] = path
        log.info("Wrote %s", path)
    return paths
