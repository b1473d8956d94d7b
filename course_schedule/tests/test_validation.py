from __future__ import annotations

import pytest

from course_schedule.models import CourseConfig
from course_schedule.validation import (
    ValidationError,
    validate_course_config,
    validate_date,
    validate_time,
    validate_timezone,
)


def _base_config() -> dict:
    return {
        "course_code": "CS 101",
        "course_title": "Intro",
        "semester": "Spring 2026",
        "start_date": "2026-01-12",
        "end_date": "2026-05-01",
        "sections": [
            {
                "id": "01",
                "name": "MWF",
                "meetings": [
                    {"days": ["Monday"], "start_time": "09:50", "end_time": "10:55"},
                ],
            }
        ],
        "holidays": [{"date": "2026-01-19", "name": "MLK Day"}],
        "lectures": [{"lecture_id": "intro", "dates": ["2026-01-12"]}],
        "labs": [{"id": "lab-1", "title": "Setup", "dates": ["2026-01-13"]}],
        "assignments": [{"id": "hw1", "title": "HW 1", "due_date": "2026-01-23"}],
    }


def _validate(raw: dict) -> None:
    validate_course_config(CourseConfig.from_dict(raw))


def test_valid_config_passes():
    _validate(_base_config())


def test_validation_error_is_a_value_error():
    assert issubclass(ValidationError, ValueError)


def test_field_validators():
    validate_date("2024-02-29", "Date")
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        validate_date("2026-1-5", "Date")
    with pytest.raises(ValidationError, match="not a valid date"):
        validate_date("2026-02-30", "Date")
    with pytest.raises(ValidationError, match="HH:MM"):
        validate_time("24:00", "Time")
    with pytest.raises(ValidationError, match="unknown timezone"):
        validate_timezone("Mars/Olympus_Mons", "Course")


def test_course_end_must_follow_start():
    raw = _base_config()
    raw["end_date"] = "2026-01-12"
    with pytest.raises(ValidationError, match="end date"):
        _validate(raw)


def test_meeting_end_time_must_follow_start_time():
    raw = _base_config()
    raw["sections"][0]["meetings"][0]["end_time"] = "09:00"
    with pytest.raises(ValidationError, match="end time"):
        _validate(raw)


def test_section_requires_meeting_patterns():
    raw = _base_config()
    raw["sections"][0]["meetings"] = []
    with pytest.raises(ValidationError, match="at least one meeting pattern"):
        _validate(raw)


def test_duplicate_section_ids_are_rejected():
    raw = _base_config()
    raw["sections"].append(dict(raw["sections"][0]))
    with pytest.raises(ValidationError, match="Duplicate section id: 01"):
        _validate(raw)


def test_lab_section_ids_must_not_collide_with_sections():
    raw = _base_config()
    raw["lab_sections"] = [dict(raw["sections"][0])]
    with pytest.raises(ValidationError, match="collides"):
        _validate(raw)


def test_dangling_lecture_section_reference_is_rejected():
    raw = _base_config()
    raw["lectures"][0]["sections"] = ["99"]
    with pytest.raises(ValidationError, match="unknown section: 99"):
        _validate(raw)


def test_lab_may_reference_lab_sections():
    raw = _base_config()
    raw["lab_sections"] = [
        {
            "id": "L1",
            "name": "Lab",
            "meetings": [{"days": ["Tuesday"], "start_time": "16:00", "end_time": "17:50"}],
        }
    ]
    raw["labs"][0]["sections"] = ["L1"]
    _validate(raw)


def test_holiday_range_and_type_are_checked():
    raw = _base_config()
    raw["holidays"] = [{"date": "2026-03-13", "end_date": "2026-03-09", "name": "Break"}]
    with pytest.raises(ValidationError, match="Holiday: Break"):
        _validate(raw)

    raw["holidays"] = [{"date": "2026-03-09", "name": "Break", "type": "vacation"}]
    with pytest.raises(ValidationError, match="unknown type 'vacation'"):
        _validate(raw)


def test_single_day_holiday_range_is_allowed():
    raw = _base_config()
    raw["holidays"] = [{"date": "2026-03-09", "end_date": "2026-03-09", "name": "Closure"}]
    _validate(raw)


def test_assignment_rules():
    raw = _base_config()
    raw["assignments"][0]["assigned_date"] = "2026-02-01"
    with pytest.raises(ValidationError, match="Assignment hw1"):
        _validate(raw)

    raw = _base_config()
    raw["assignments"][0]["due_time"] = "7pm"
    with pytest.raises(ValidationError, match="due time"):
        _validate(raw)

    raw = _base_config()
    raw["assignments"].append({"id": "hw1", "title": "Again", "due_date": "2026-02-01"})
    with pytest.raises(ValidationError, match="Duplicate assignment id: hw1"):
        _validate(raw)


def test_canvas_settings_require_url_and_course():
    raw = _base_config()
    raw["canvas"] = {"canvas_url": "https://canvas.example.edu"}
    with pytest.raises(ValidationError, match="canvas_url and course_id"):
        _validate(raw)

    raw["canvas"]["course_id"] = "123"
    _validate(raw)
