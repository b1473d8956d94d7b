"""Timezone-aware calendar events derived from a course configuration.

Lecture and lab events are placed on every meeting pattern whose weekday
matches a mapped date; assignments become one-hour "Due:" events. Meeting
times are read in the section's timezone and due times in the assignment's
timezone (falling back to the course timezone).
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from course_schedule.dates import parse_iso_date, time_from_hhmm, weekday_of
from course_schedule.generator import applies_to_section
from course_schedule.models import Assignment, CourseConfig, Section


@dataclass(frozen=True)
class CalendarEvent:
    id: int
    uid: str
    title: str
    start: datetime
    end: datetime
    location: str | None = None
    organizer_name: str | None = None
    calendar_type: str = "events"


def localize(day: str, hhmm: str, tz_name: str) -> datetime:
    return datetime.combine(
        parse_iso_date(day), time_from_hhmm(hhmm), tzinfo=ZoneInfo(tz_name)
    )


def assignment_due_datetime(assignment: Assignment, default_timezone: str) -> datetime:
    return localize(
        assignment.due_date,
        assignment.due_time,
        assignment.timezone or default_timezone,
    )


def _meeting_events(
    section: Section,
    day: str,
    *,
    uid_prefix: str,
    title: str,
    next_id,
) -> list[CalendarEvent]:
    weekday = weekday_of(day)
    events = []
    for meeting in section.meetings:
        if weekday not in meeting.days:
            continue
        events.append(
            CalendarEvent(
                id=next(next_id),
                uid=f"{uid_prefix}-{day}-{section.id}-{meeting.start_time.replace(':', '')}",
                title=f"{section.name}: {title}",
                start=localize(day, meeting.start_time, section.timezone),
                end=localize(day, meeting.end_time, section.timezone),
                location=meeting.location,
                organizer_name=section.instructors[0] if section.instructors else None,
            )
        )
    return events


def build_calendar_events(config: CourseConfig, *, first_id: int = 1) -> list[CalendarEvent]:
    next_id = itertools.count(first_id)
    events: list[CalendarEvent] = []

    for lecture in config.lectures:
        title = ", ".join(lecture.topics) if lecture.topics else lecture.display_title
        for day in lecture.dates:
            for section in config.sections:
                if not applies_to_section(lecture.sections, section.id):
                    continue
                events.extend(
                    _meeting_events(
                        section,
                        day,
                        uid_prefix=f"lecture-{lecture.lecture_id}",
                        title=title,
                        next_id=next_id,
                    )
                )

    for lab in config.labs or []:
        for day in lab.dates:
            for lab_section in config.lab_sections or []:
                if not applies_to_section(lab.sections, lab_section.id):
                    continue
                events.extend(
                    _meeting_events(
                        lab_section,
                        day,
                        uid_prefix=f"lab-meeting-{lab.id}",
                        title=lab.display_title,
                        next_id=next_id,
                    )
                )

    for assignment in config.assignments or []:
        due_at = assignment_due_datetime(assignment, config.timezone)
        events.append(
            CalendarEvent(
                id=next(next_id),
                uid=f"assignment-{assignment.id}",
                title=f"Due: {assignment.title}",
                start=due_at - timedelta(hours=1),
                end=due_at,
            )
        )

    return sorted(events, key=lambda event: event.start)


def _overlaps(event: CalendarEvent, window_start: datetime, window_end: datetime) -> bool:
    return event.start < window_end and event.end > window_start


def events_for_day(events: list[CalendarEvent], day: str | date, tz_name: str) -> list[CalendarEvent]:
    start = datetime.combine(parse_iso_date(day), datetime.min.time(), tzinfo=ZoneInfo(tz_name))
    return [event for event in events if _overlaps(event, start, start + timedelta(days=1))]


def events_for_week(
    events: list[CalendarEvent],
    week_start: str | date,
    tz_name: str,
) -> list[CalendarEvent]:
    start = datetime.combine(
        parse_iso_date(week_start), datetime.min.time(), tzinfo=ZoneInfo(tz_name)
    )
    return [event for event in events if _overlaps(event, start, start + timedelta(days=7))]
