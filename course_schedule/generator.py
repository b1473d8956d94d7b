from __future__ import annotations

import logging
from typing import Sequence

from course_schedule.dates import (
    format_iso_date,
    iterate_days,
    parse_iso_date,
    weekday_of,
    within_inclusive,
)
from course_schedule.models import (
    CourseConfig,
    CourseSchedule,
    Holiday,
    ImportantDates,
    Lab,
    LabSection,
    LectureMapping,
    MeetingPattern,
    ScheduleEntry,
    Section,
)

log = logging.getLogger(__name__)

PLACEHOLDER_TIME = "00:00"


def merged_holidays(config: CourseConfig, section: Section) -> list[Holiday]:
    return [*config.holidays, *section.additional_holidays]


def holiday_covers(holiday: Holiday, day: str) -> bool:
    if holiday.end_date:
        return within_inclusive(day, holiday.date, holiday.end_date)
    return parse_iso_date(day) == parse_iso_date(holiday.date)


def resolve_holiday(day: str, holidays: Sequence[Holiday]) -> Holiday | None:
    """Return the first holiday in list order whose date or range covers ``day``.

    Callers pass course-wide holidays before section-specific ones, so a
    course-wide entry wins when both cover the same date.
    """
    for holiday in holidays:
        if holiday_covers(holiday, day):
            return holiday
    return None


def effective_range(section: Section, course_start: str, course_end: str) -> tuple[str, str]:
    return section.start_date or course_start, section.end_date or course_end


def expand_meetings(
    section: Section,
    course_start: str,
    course_end: str,
    holidays: Sequence[Holiday] = (),
) -> dict[str, list[MeetingPattern]]:
    """Map every date in the section's range to the weekly patterns recurring on it.

    Holiday-covered dates stay in the map; ``holidays`` never suppresses a
    date, cancellation is recorded when entries are assembled.
    """
    start, end = effective_range(section, course_start, course_end)
    patterns_by_weekday: dict[str, list[MeetingPattern]] = {}
    for pattern in section.meetings:
        for weekday in dict.fromkeys(pattern.days):
            patterns_by_weekday.setdefault(weekday, []).append(pattern)

    meeting_dates: dict[str, list[MeetingPattern]] = {}
    for day in iterate_days(start, end):
        patterns = patterns_by_weekday.get(weekday_of(day))
        if patterns:
            meeting_dates[format_iso_date(day)] = list(patterns)
    return meeting_dates


def applies_to_section(scoped_sections: Sequence[str] | None, section_id: str) -> bool:
    if not scoped_sections:
        return True
    return section_id in scoped_sections


def find_lecture_for_date(
    day: str,
    section_id: str,
    lectures: Sequence[LectureMapping] | None,
) -> LectureMapping | None:
    for lecture in lectures or ():
        if day in lecture.dates and applies_to_section(lecture.sections, section_id):
            return lecture
    return None


def find_lab_for_date(
    day: str,
    section_id: str,
    labs: Sequence[Lab] | None,
) -> Lab | None:
    for lab in labs or ():
        if day in lab.dates and applies_to_section(lab.sections, section_id):
            return lab
    return None


def _placeholder_pattern(section: Section, day: str) -> MeetingPattern:
    if section.meetings:
        return section.meetings[0]
    return MeetingPattern(
        days=[weekday_of(day)],
        start_time=PLACEHOLDER_TIME,
        end_time=PLACEHOLDER_TIME,
    )


def _inject_content_dates(
    meeting_dates: dict[str, list[MeetingPattern]],
    section: Section,
    content: Sequence[LectureMapping | Lab],
    *,
    start: str,
    end: str,
) -> set[str]:
    injected: set[str] = set()
    for item in content:
        if not applies_to_section(item.sections, section.id):
            continue
        for day in item.dates:
            if day in meeting_dates or not within_inclusive(day, start, end):
                continue
            meeting_dates[day] = [_placeholder_pattern(section, day)]
            injected.add(day)
    return injected


def _assemble_entries(
    section: Section,
    config: CourseConfig,
    *,
    lectures: Sequence[LectureMapping] | None,
    labs: Sequence[Lab] | None,
) -> list[ScheduleEntry]:
    holidays = merged_holidays(config, section)
    meeting_dates = expand_meetings(section, config.start_date, config.end_date, holidays)
    start, end = effective_range(section, config.start_date, config.end_date)
    injected_dates = _inject_content_dates(
        meeting_dates,
        section,
        [*(lectures or ()), *(labs or ())],
        start=start,
        end=end,
    )

    entries: list[ScheduleEntry] = []
    for day in sorted(meeting_dates):
        holiday = resolve_holiday(day, holidays)
        lecture = find_lecture_for_date(day, section.id, lectures)
        lab = find_lab_for_date(day, section.id, labs)
        notes = (lecture.notes if lecture else None) or (lab.notes if lab else None)
        for pattern in meeting_dates[day]:
            entries.append(
                ScheduleEntry(
                    date=day,
                    day_of_week=weekday_of(day),
                    meeting_number=len(entries) + 1,
                    section_id=section.id,
                    section_name=section.name,
                    meeting=pattern,
                    lecture=lecture,
                    lab=lab,
                    holiday=holiday,
                    is_cancelled=holiday is not None,
                    injected=day in injected_dates,
                    notes=notes,
                )
            )
    return entries


def build_section_schedule(section: Section, config: CourseConfig) -> list[ScheduleEntry]:
    return _assemble_entries(section, config, lectures=config.lectures, labs=config.labs)


def build_lab_section_schedule(lab_section: LabSection, config: CourseConfig) -> list[ScheduleEntry]:
    if config.labs is None:
        log.info(
            "No labs configured; lab section '%s' meetings carry no lab content.",
            lab_section.id,
        )
    return _assemble_entries(lab_section, config, lectures=None, labs=config.labs)


def generate_schedule(config: CourseConfig) -> CourseSchedule:
    warnings: list[str] = []

    schedule_by_section: dict[str, list[ScheduleEntry]] = {}
    combined: list[ScheduleEntry] = []
    for section in config.sections:
        entries = build_section_schedule(section, config)
        schedule_by_section[section.id] = entries
        combined.extend(entries)
        log.info("Section %s (%s): %d meetings", section.id, section.name, len(entries))

    lab_schedule_by_section: dict[str, list[ScheduleEntry]] | None = None
    if config.lab_sections:
        lab_schedule_by_section = {}
        for lab_section in config.lab_sections:
            entries = build_lab_section_schedule(lab_section, config)
            lab_schedule_by_section[lab_section.id] = entries
            combined.extend(entries)
            if entries:
                log.info(
                    "Lab section %s (%s): %d meetings",
                    lab_section.id,
                    lab_section.name,
                    len(entries),
                )
            else:
                message = f"Lab section '{lab_section.id}' produced no meetings."
                log.warning(message)
                warnings.append(message)
    else:
        message = f"No lab sections configured for {config.course_code or 'course'}."
        log.warning(message)
        warnings.append(message)

    # sorted() is stable, so same-date entries keep section-then-lab order.
    all_entries = sorted(combined, key=lambda entry: entry.date)
    log.info("Generated schedule with %d total class meetings", len(all_entries))

    return CourseSchedule(
        config=config,
        schedule_by_section=schedule_by_section,
        lab_schedule_by_section=lab_schedule_by_section,
        all_entries=all_entries,
        important_dates=ImportantDates(
            start_date=config.start_date,
            end_date=config.end_date,
            holidays=list(config.holidays),
            exam_dates=[h.date for h in config.holidays if h.type == "exam-period"],
            assignment_due_dates=[a.due_date for a in config.assignments or []],
        ),
        warnings=warnings,
    )
