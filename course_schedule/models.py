from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from course_schedule.dates import WEEKDAYS

WEEKDAY_ALIASES = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Tues": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Thur": "Thursday",
    "Thurs": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

MEETING_TYPES = {"lecture", "lab", "recitation", "studio", "other"}

HOLIDAY_TYPES = {
    "holiday",
    "break",
    "reading-day",
    "exam-period",
    "no-class",
    "special-event",
    "deadline",
}

ASSIGNMENT_TYPES = {"homework", "project", "lab", "quiz", "exam", "reading"}

DEFAULT_DUE_TIME = "23:59"
DEFAULT_TIMEZONE = "America/New_York"


def _pick(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _require(raw: dict[str, Any], *keys: str, context: str) -> Any:
    value = _pick(raw, *keys)
    if value is None:
        raise ValueError(f"{context} is missing required field `{keys[0]}`.")
    return value


def _as_mapping(raw: Any, context: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValueError(f"{context} must be a mapping/object, got: {raw!r}")
    return raw


def _as_list(raw: Any, context: str) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise ValueError(f"{context} must be a list, got: {raw!r}")
    return list(raw)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_weekday(value: str) -> str:
    text = str(value).strip()
    if text in WEEKDAYS:
        return text
    canonical = WEEKDAY_ALIASES.get(text[:1].upper() + text[1:].lower())
    if canonical is None:
        canonical = next(
            (day for day in WEEKDAYS if day.lower() == text.lower()), None
        )
    if canonical is None:
        raise ValueError(f"Unknown weekday: {value!r}")
    return canonical


@dataclass(frozen=True)
class MeetingPattern:
    days: list[str]
    start_time: str
    end_time: str
    type: str | None = None
    location: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MeetingPattern:
        raw = _as_mapping(raw, "Meeting pattern")
        days = [
            normalize_weekday(day)
            for day in _as_list(raw.get("days"), "Meeting pattern `days`")
        ]
        return cls(
            days=days,
            start_time=str(_require(raw, "start_time", "startTime", context="Meeting pattern")),
            end_time=str(_require(raw, "end_time", "endTime", context="Meeting pattern")),
            type=_optional_str(raw.get("type")),
            location=_optional_str(raw.get("location")),
            notes=_optional_str(raw.get("notes")),
        )


@dataclass(frozen=True)
class Holiday:
    date: str
    name: str
    type: str = "holiday"
    end_date: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Holiday:
        raw = _as_mapping(raw, "Holiday")
        return cls(
            date=str(_require(raw, "date", "start_date", "startDate", context="Holiday")),
            name=str(raw.get("name") or "").strip(),
            type=str(raw.get("type") or "holiday").strip(),
            end_date=_optional_str(_pick(raw, "end_date", "endDate")),
            notes=_optional_str(raw.get("notes")),
        )


@dataclass(frozen=True)
class Section:
    id: str
    name: str
    meetings: list[MeetingPattern]
    timezone: str = DEFAULT_TIMEZONE
    instructors: list[str] = field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    additional_holidays: list[Holiday] = field(default_factory=list)
    crn: str | None = None
    canvas_course_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any], *, default_timezone: str = DEFAULT_TIMEZONE):
        raw = _as_mapping(raw, cls.__name__)
        section_id = str(_require(raw, "id", context=cls.__name__)).strip()
        context = f"{cls.__name__} {section_id}"
        return cls(
            id=section_id,
            name=str(raw.get("name") or section_id).strip(),
            meetings=[
                MeetingPattern.from_dict(item)
                for item in _as_list(raw.get("meetings"), f"{context} `meetings`")
            ],
            timezone=str(_pick(raw, "timezone", "timeZone", default=default_timezone)),
            instructors=[
                str(item) for item in _as_list(raw.get("instructors"), f"{context} `instructors`")
            ],
            start_date=_optional_str(_pick(raw, "start_date", "startDate")),
            end_date=_optional_str(_pick(raw, "end_date", "endDate")),
            additional_holidays=[
                Holiday.from_dict(item)
                for item in _as_list(
                    _pick(raw, "additional_holidays", "additionalHolidays"),
                    f"{context} `additional_holidays`",
                )
            ],
            crn=_optional_str(raw.get("crn")),
            canvas_course_id=_optional_str(_pick(raw, "canvas_course_id", "canvasCourseId")),
        )


@dataclass(frozen=True)
class LabSection(Section):
    pass


@dataclass(frozen=True)
class LectureMaterials:
    slides: str | None = None
    recording: str | None = None
    additional_reading: list[str] = field(default_factory=list)
    code: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> LectureMaterials:
        raw = _as_mapping(raw, "Lecture materials")
        return cls(
            slides=_optional_str(raw.get("slides")),
            recording=_optional_str(raw.get("recording")),
            additional_reading=[
                str(item)
                for item in _as_list(
                    _pick(raw, "additional_reading", "additionalReading"),
                    "Lecture materials `additional_reading`",
                )
            ],
            code=[str(item) for item in _as_list(raw.get("code"), "Lecture materials `code`")],
        )


@dataclass(frozen=True)
class LectureMapping:
    lecture_id: str
    dates: list[str]
    title: str | None = None
    sections: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)
    notes: str | None = None
    materials: LectureMaterials | None = None

    @property
    def display_title(self) -> str:
        return self.title or self.lecture_id

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> LectureMapping:
        raw = _as_mapping(raw, "Lecture")
        lecture_id = str(_require(raw, "lecture_id", "lectureId", "id", context="Lecture")).strip()
        context = f"Lecture {lecture_id}"
        materials_raw = raw.get("materials")
        return cls(
            lecture_id=lecture_id,
            dates=[str(item) for item in _as_list(raw.get("dates"), f"{context} `dates`")],
            title=_optional_str(raw.get("title")),
            sections=[str(item) for item in _as_list(raw.get("sections"), f"{context} `sections`")],
            topics=[str(item) for item in _as_list(raw.get("topics"), f"{context} `topics`")],
            notes=_optional_str(raw.get("notes")),
            materials=LectureMaterials.from_dict(materials_raw) if materials_raw else None,
        )


@dataclass(frozen=True)
class Lab:
    id: str
    title: str
    dates: list[str]
    sections: list[str] = field(default_factory=list)
    url: str | None = None
    description: str | None = None
    points: float | None = None
    notes: str | None = None

    @property
    def display_title(self) -> str:
        return self.title or self.id

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Lab:
        raw = _as_mapping(raw, "Lab")
        lab_id = str(_require(raw, "id", context="Lab")).strip()
        context = f"Lab {lab_id}"
        points = raw.get("points")
        return cls(
            id=lab_id,
            title=str(raw.get("title") or "").strip(),
            dates=[str(item) for item in _as_list(raw.get("dates"), f"{context} `dates`")],
            sections=[str(item) for item in _as_list(raw.get("sections"), f"{context} `sections`")],
            url=_optional_str(raw.get("url")),
            description=_optional_str(raw.get("description")),
            points=float(points) if points is not None else None,
            notes=_optional_str(raw.get("notes")),
        )


@dataclass(frozen=True)
class Assignment:
    id: str
    title: str
    type: str
    assigned_date: str
    due_date: str
    due_time: str = DEFAULT_DUE_TIME
    timezone: str | None = None
    points: float | None = None
    url: str | None = None
    canvas_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Assignment:
        raw = _as_mapping(raw, "Assignment")
        assignment_id = str(_require(raw, "id", context="Assignment")).strip()
        context = f"Assignment {assignment_id}"
        points = raw.get("points")
        due_date = str(_require(raw, "due_date", "dueDate", context=context))
        return cls(
            id=assignment_id,
            title=str(raw.get("title") or assignment_id).strip(),
            type=str(raw.get("type") or "homework").strip(),
            assigned_date=str(_pick(raw, "assigned_date", "assignedDate", default=due_date)),
            due_date=due_date,
            due_time=str(_pick(raw, "due_time", "dueTime", default=DEFAULT_DUE_TIME)),
            timezone=_optional_str(_pick(raw, "timezone", "timeZone")),
            points=float(points) if points is not None else None,
            url=_optional_str(raw.get("url")),
            canvas_id=_optional_str(_pick(raw, "canvas_id", "canvasId")),
            notes=_optional_str(raw.get("notes")),
        )


@dataclass(frozen=True)
class CanvasSettings:
    canvas_url: str | None = None
    course_id: str | None = None
    enable_sync: bool = False
    api_token_env_var: str = "CANVAS_API_TOKEN"
    sync_assignments: bool = True
    sync_modules: bool = True
    sync_homepage: bool = True

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CanvasSettings:
        raw = _as_mapping(raw, "Canvas settings")
        # Older configs nest the toggles under `syncSettings`.
        nested = raw.get("sync_settings") or raw.get("syncSettings") or {}
        merged = {**nested, **raw}
        return cls(
            canvas_url=_optional_str(_pick(merged, "canvas_url", "canvasUrl")),
            course_id=_optional_str(_pick(merged, "course_id", "courseId")),
            enable_sync=bool(_pick(merged, "enable_sync", "enableSync", default=False)),
            api_token_env_var=str(
                _pick(merged, "api_token_env_var", "apiTokenEnvVar", default="CANVAS_API_TOKEN")
            ),
            sync_assignments=bool(_pick(merged, "sync_assignments", "syncAssignments", default=True)),
            sync_modules=bool(_pick(merged, "sync_modules", "syncModules", default=True)),
            sync_homepage=bool(_pick(merged, "sync_homepage", "syncHomepage", default=True)),
        )


@dataclass(frozen=True)
class CourseConfig:
    course_code: str
    course_title: str
    semester: str
    start_date: str
    end_date: str
    sections: list[Section]
    holidays: list[Holiday] = field(default_factory=list)
    lectures: list[LectureMapping] = field(default_factory=list)
    lab_sections: list[LabSection] | None = None
    labs: list[Lab] | None = None
    assignments: list[Assignment] | None = None
    academic_year: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    canvas: CanvasSettings | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CourseConfig:
        raw = _as_mapping(raw, "Course configuration")
        course_timezone = str(_pick(raw, "timezone", "timeZone", default=DEFAULT_TIMEZONE))
        lab_sections_raw = _pick(raw, "lab_sections", "labSections")
        labs_raw = raw.get("labs")
        assignments_raw = raw.get("assignments")
        canvas_raw = raw.get("canvas")
        return cls(
            course_code=str(_pick(raw, "course_code", "courseCode", default="")).strip(),
            course_title=str(_pick(raw, "course_title", "courseTitle", default="")).strip(),
            semester=str(raw.get("semester") or "").strip(),
            start_date=str(_require(raw, "start_date", "startDate", context="Course configuration")),
            end_date=str(_require(raw, "end_date", "endDate", context="Course configuration")),
            sections=[
                Section.from_dict(item, default_timezone=course_timezone)
                for item in _as_list(raw.get("sections"), "`sections`")
            ],
            holidays=[
                Holiday.from_dict(item)
                for item in _as_list(raw.get("holidays"), "`holidays`")
            ],
            lectures=[
                LectureMapping.from_dict(item)
                for item in _as_list(raw.get("lectures"), "`lectures`")
            ],
            lab_sections=(
                [
                    LabSection.from_dict(item, default_timezone=course_timezone)
                    for item in _as_list(lab_sections_raw, "`lab_sections`")
                ]
                if lab_sections_raw is not None
                else None
            ),
            labs=(
                [Lab.from_dict(item) for item in _as_list(labs_raw, "`labs`")]
                if labs_raw is not None
                else None
            ),
            assignments=(
                [Assignment.from_dict(item) for item in _as_list(assignments_raw, "`assignments`")]
                if assignments_raw is not None
                else None
            ),
            academic_year=_optional_str(_pick(raw, "academic_year", "academicYear")),
            timezone=course_timezone,
            canvas=CanvasSettings.from_dict(canvas_raw) if canvas_raw else None,
            metadata=dict(raw.get("metadata") or {}),
        )


@dataclass
class ScheduleEntry:
    date: str
    day_of_week: str
    meeting_number: int
    section_id: str
    section_name: str
    meeting: MeetingPattern
    lecture: LectureMapping | None = None
    lab: Lab | None = None
    holiday: Holiday | None = None
    is_cancelled: bool = False
    injected: bool = False
    notes: str | None = None


@dataclass
class ImportantDates:
    start_date: str
    end_date: str
    holidays: list[Holiday]
    exam_dates: list[str]
    assignment_due_dates: list[str]


@dataclass
class CourseSchedule:
    config: CourseConfig
    schedule_by_section: dict[str, list[ScheduleEntry]]
    all_entries: list[ScheduleEntry]
    important_dates: ImportantDates
    lab_schedule_by_section: dict[str, list[ScheduleEntry]] | None = None
    warnings: list[str] = field(default_factory=list)

    def entries_for(self, section_id: str | None = None) -> list[ScheduleEntry]:
        """Entries of one lecture or lab section, or every entry when no id is given."""
        if section_id is None:
            return self.all_entries
        if section_id in self.schedule_by_section:
            return self.schedule_by_section[section_id]
        if self.lab_schedule_by_section and section_id in self.lab_schedule_by_section:
            return self.lab_schedule_by_section[section_id]
        raise ValueError(f"Unknown section id: {section_id!r}")
