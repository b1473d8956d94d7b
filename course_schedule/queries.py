from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta

from course_schedule.dates import format_iso_date, parse_iso_date, time_from_hhmm, week_start_sunday
from course_schedule.models import (
    Assignment,
    CourseConfig,
    CourseSchedule,
    LectureMapping,
    ScheduleEntry,
)


@dataclass
class CourseStats:
    total_meetings: int
    meetings_by_section: dict[str, int]
    total_lectures: int
    total_assignments: int
    total_holidays: int
    course_weeks: int
    average_meetings_per_week: float


def _today_iso(value: str | date | None) -> str:
    if value is None:
        return format_iso_date(date.today())
    return format_iso_date(parse_iso_date(value))


def entries_for_date(schedule: CourseSchedule, day: str) -> list[ScheduleEntry]:
    return [entry for entry in schedule.all_entries if entry.date == day]


def entries_for_date_range(schedule: CourseSchedule, start: str, end: str) -> list[ScheduleEntry]:
    return [entry for entry in schedule.all_entries if start <= entry.date <= end]


def dates_for_lecture(schedule: CourseSchedule, lecture_id: str) -> list[ScheduleEntry]:
    return [
        entry
        for entry in schedule.all_entries
        if entry.lecture is not None and entry.lecture.lecture_id == lecture_id
    ]


def upcoming_meetings(
    schedule: CourseSchedule,
    from_date: str | date | None = None,
    limit: int | None = None,
) -> list[ScheduleEntry]:
    today = _today_iso(from_date)
    upcoming = [entry for entry in schedule.all_entries if entry.date >= today]
    return upcoming[:limit] if limit else upcoming


def recent_meetings(
    schedule: CourseSchedule,
    from_date: str | date | None = None,
    limit: int = 5,
) -> list[ScheduleEntry]:
    today = _today_iso(from_date)
    past = [entry for entry in schedule.all_entries if entry.date < today]
    return past[-limit:] if limit > 0 else []


def assignments_due_in_range(config: CourseConfig, start: str, end: str) -> list[Assignment]:
    return [
        assignment
        for assignment in config.assignments or []
        if start <= assignment.due_date <= end
    ]


def upcoming_assignments(
    config: CourseConfig,
    from_date: str | date | None = None,
    limit: int | None = None,
) -> list[Assignment]:
    today = _today_iso(from_date)
    upcoming = sorted(
        (a for a in config.assignments or [] if a.due_date >= today),
        key=lambda assignment: assignment.due_date,
    )
    return upcoming[:limit] if limit else upcoming


def current_week_entries(
    schedule: CourseSchedule,
    reference_date: str | date | None = None,
) -> list[ScheduleEntry]:
    """Entries in the Sunday-to-Saturday week containing ``reference_date``."""
    week_start = week_start_sunday(reference_date or date.today())
    week_end = week_start + timedelta(days=6)
    return entries_for_date_range(
        schedule, format_iso_date(week_start), format_iso_date(week_end)
    )


def academic_week(day: str | date, course_start: str | date) -> int:
    days = (parse_iso_date(day) - parse_iso_date(course_start)).days
    return math.ceil(days / 7)


def course_stats(schedule: CourseSchedule) -> CourseStats:
    config = schedule.config
    days = (parse_iso_date(config.end_date) - parse_iso_date(config.start_date)).days
    course_weeks = math.ceil(days / 7)
    total = len(schedule.all_entries)
    return CourseStats(
        total_meetings=total,
        meetings_by_section={
            section_id: len(entries)
            for section_id, entries in schedule.schedule_by_section.items()
        },
        total_lectures=len(config.lectures),
        total_assignments=len(config.assignments or []),
        total_holidays=len(config.holidays),
        course_weeks=course_weeks,
        average_meetings_per_week=total / course_weeks if course_weeks else float(total),
    )


def unassigned_meetings(schedule: CourseSchedule) -> list[ScheduleEntry]:
    return [
        entry
        for entry in schedule.all_entries
        if not entry.is_cancelled and entry.lecture is None
    ]


def lecture_overlaps(schedule: CourseSchedule) -> list[LectureMapping]:
    dates_by_lecture: dict[str, set[str]] = {}
    for entry in schedule.all_entries:
        if entry.lecture is not None:
            dates_by_lecture.setdefault(entry.lecture.lecture_id, set()).add(entry.date)
    return [
        lecture
        for lecture in schedule.config.lectures
        if len(dates_by_lecture.get(lecture.lecture_id, ())) > 1
    ]


def group_by_week(entries: list[ScheduleEntry]) -> dict[int, list[ScheduleEntry]]:
    weeks: dict[int, list[ScheduleEntry]] = {}
    if not entries:
        return weeks
    first_date = entries[0].date
    for entry in entries:
        weeks.setdefault(academic_week(entry.date, first_date), []).append(entry)
    return weeks


def is_meeting_day(
    schedule: CourseSchedule,
    day: str,
    section_id: str | None = None,
) -> bool:
    return any(
        not entry.is_cancelled and (section_id is None or entry.section_id == section_id)
        for entry in entries_for_date(schedule, day)
    )


def semester_progress(config: CourseConfig, reference_date: str | date | None = None) -> float:
    today = parse_iso_date(reference_date or date.today())
    start = parse_iso_date(config.start_date)
    end = parse_iso_date(config.end_date)
    if today <= start:
        return 0.0
    if today >= end:
        return 1.0
    return (today - start).days / (end - start).days


def format_time_12h(value: str) -> str:
    parsed = time_from_hhmm(value)
    period = "PM" if parsed.hour >= 12 else "AM"
    hour = parsed.hour % 12 or 12
    return f"{hour}:{parsed.minute:02d} {period}"
