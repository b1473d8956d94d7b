from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from course_schedule.dates import minutes_since_midnight, parse_iso_date
from course_schedule.models import (
    ASSIGNMENT_TYPES,
    HOLIDAY_TYPES,
    MEETING_TYPES,
    CourseConfig,
    Holiday,
    Lab,
    LectureMapping,
    Section,
)

log = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")


class ValidationError(ValueError):
    pass


def validate_date(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError(f"{field_name} must be in YYYY-MM-DD format, got: {value}")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise ValidationError(f"{field_name} is not a valid date: {value}") from exc


def validate_time(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError(f"{field_name} must be in HH:MM format (24-hour), got: {value}")


def validate_date_range(start: str, end: str, context: str, *, allow_equal: bool = False) -> None:
    start_day = parse_iso_date(start)
    end_day = parse_iso_date(end)
    if end_day < start_day or (end_day == start_day and not allow_equal):
        raise ValidationError(
            f"{context}: end date ({end}) must be after start date ({start})"
        )


def validate_time_range(start: str, end: str, context: str) -> None:
    if minutes_since_midnight(end) <= minutes_since_midnight(start):
        raise ValidationError(
            f"{context}: end time ({end}) must be after start time ({start})"
        )


def validate_timezone(value: str, context: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f'{context} must have a timezone (e.g., "America/New_York")')
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"{context} has an unknown timezone: {value}") from exc


def validate_section(section: Section, *, kind: str = "Section") -> None:
    if not section.id.strip():
        raise ValidationError(f"{kind} must have a non-empty id")
    if not section.name.strip():
        raise ValidationError(f"{kind} {section.id} must have a non-empty name")
    validate_timezone(section.timezone, f"{kind} {section.id}")
    if not section.meetings:
        raise ValidationError(f"{kind} {section.id} must have at least one meeting pattern")

    for idx, meeting in enumerate(section.meetings):
        context = f"{kind} {section.id}, meeting {idx}"
        if not meeting.days:
            raise ValidationError(f"{context}: must have at least one day")
        if meeting.type is not None and meeting.type not in MEETING_TYPES:
            raise ValidationError(f"{context}: unknown meeting type '{meeting.type}'")
        validate_time(meeting.start_time, f"{context} start time")
        validate_time(meeting.end_time, f"{context} end time")
        validate_time_range(meeting.start_time, meeting.end_time, context)

    if section.start_date:
        validate_date(section.start_date, f"{kind} {section.id} start date")
    if section.end_date:
        validate_date(section.end_date, f"{kind} {section.id} end date")
    if section.start_date and section.end_date:
        validate_date_range(section.start_date, section.end_date, f"{kind} {section.id}")

    for holiday in section.additional_holidays:
        validate_holiday(holiday)


def validate_holiday(holiday: Holiday) -> None:
    validate_date(holiday.date, "Holiday date")
    if holiday.end_date:
        validate_date(holiday.end_date, "Holiday end date")
        validate_date_range(
            holiday.date, holiday.end_date, f"Holiday: {holiday.name}", allow_equal=True
        )
    if not holiday.name.strip():
        raise ValidationError("Holiday must have a non-empty name")
    if holiday.type not in HOLIDAY_TYPES:
        raise ValidationError(f"Holiday {holiday.name} has unknown type '{holiday.type}'")


def validate_lecture(lecture: LectureMapping) -> None:
    if not lecture.lecture_id.strip():
        raise ValidationError("Lecture must have a non-empty lecture_id")
    if not lecture.dates:
        raise ValidationError(f"Lecture {lecture.lecture_id} must have at least one date")
    for idx, value in enumerate(lecture.dates):
        validate_date(value, f"Lecture {lecture.lecture_id}, date {idx}")


def validate_lab(lab: Lab) -> None:
    if not lab.id.strip():
        raise ValidationError("Lab must have a non-empty id")
    if not lab.title.strip():
        raise ValidationError(f"Lab {lab.id} must have a non-empty title")
    if not lab.dates:
        raise ValidationError(f"Lab {lab.id} must have at least one date")
    for idx, value in enumerate(lab.dates):
        validate_date(value, f"Lab {lab.id}, date {idx}")


def _check_unique(ids: Iterable[str], label: str) -> set[str]:
    seen: set[str] = set()
    for value in ids:
        if value in seen:
            raise ValidationError(f"Duplicate {label} id: {value}")
        seen.add(value)
    return seen


def _check_references(owner: str, references: Iterable[str], known: set[str]) -> None:
    for section_id in references:
        if section_id not in known:
            raise ValidationError(f"{owner} references unknown section: {section_id}")


def validate_course_config(config: CourseConfig) -> None:
    """Raise ``ValidationError`` for the first rule the configuration breaks."""
    if not config.course_code.strip():
        raise ValidationError("Course must have a course_code")
    if not config.course_title.strip():
        raise ValidationError("Course must have a course_title")
    if not config.semester.strip():
        raise ValidationError("Course must have a semester")

    validate_date(config.start_date, "Course start date")
    validate_date(config.end_date, "Course end date")
    validate_date_range(config.start_date, config.end_date, "Course")
    validate_timezone(config.timezone, "Course")

    if not config.sections:
        raise ValidationError("Course must have at least one section")
    section_ids = _check_unique((section.id for section in config.sections), "section")
    for section in config.sections:
        validate_section(section)

    lab_section_ids: set[str] = set()
    if config.lab_sections:
        lab_section_ids = _check_unique(
            (section.id for section in config.lab_sections), "lab section"
        )
        overlap = sorted(section_ids & lab_section_ids)
        if overlap:
            raise ValidationError(f"Lab section id collides with section id: {overlap[0]}")
        for lab_section in config.lab_sections:
            validate_section(lab_section, kind="Lab section")

    for holiday in config.holidays:
        validate_holiday(holiday)

    _check_unique((lecture.lecture_id for lecture in config.lectures), "lecture")
    for lecture in config.lectures:
        validate_lecture(lecture)
        _check_references(f"Lecture {lecture.lecture_id}", lecture.sections, section_ids)

    if config.labs:
        _check_unique((lab.id for lab in config.labs), "lab")
        for lab in config.labs:
            validate_lab(lab)
            _check_references(f"Lab {lab.id}", lab.sections, section_ids | lab_section_ids)

    _check_unique((assignment.id for assignment in config.assignments or []), "assignment")
    for assignment in config.assignments or []:
        context = f"Assignment {assignment.id}"
        if assignment.type not in ASSIGNMENT_TYPES:
            raise ValidationError(f"{context} has unknown type '{assignment.type}'")
        validate_date(assignment.assigned_date, f"{context} assigned date")
        validate_date(assignment.due_date, f"{context} due date")
        validate_date_range(
            assignment.assigned_date, assignment.due_date, context, allow_equal=True
        )
        validate_time(assignment.due_time, f"{context} due time")
        if assignment.timezone:
            validate_timezone(assignment.timezone, context)

    if config.canvas is not None:
        if not config.canvas.canvas_url or not config.canvas.course_id:
            raise ValidationError("Canvas configuration must include canvas_url and course_id")

    log.debug("Course configuration validated successfully")
