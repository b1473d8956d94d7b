from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from course_schedule.loader import build_course_schedule, load_course_config, load_raw_config
from course_schedule.validation import ValidationError

SAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "configs" / "sample_course.yaml"


def _base_config() -> dict:
    return {
        "courseCode": "CS 101",
        "courseTitle": "Intro",
        "semester": "Spring 2026",
        "startDate": "2026-01-12",
        "endDate": "2026-01-16",
        "timeZone": "America/Chicago",
        "sections": [
            {
                "id": "01",
                "name": "MWF",
                "meetings": [
                    {"days": ["Mon", "Wed", "Fri"], "startTime": "09:50", "endTime": "10:55"}
                ],
                "additionalHolidays": [
                    {"date": "2026-01-16", "name": "Section trip", "type": "special-event"}
                ],
            }
        ],
        "holidays": [{"date": "2026-01-14", "name": "Reading Day", "type": "no-class"}],
        "lectures": [{"lectureId": "intro", "dates": ["2026-01-12"]}],
        "assignments": [{"id": "hw1", "title": "HW 1", "dueDate": "2026-01-16", "dueTime": "17:00"}],
        "canvas": {
            "canvasUrl": "https://canvas.example.edu",
            "courseId": 42,
            "syncSettings": {"syncHomepage": False},
        },
    }


def test_load_yaml_accepts_camel_case_keys(tmp_path):
    path = tmp_path / "course.yaml"
    path.write_text(yaml.safe_dump(_base_config()), encoding="utf-8")

    config = load_course_config(path)

    assert config.course_code == "CS 101"
    assert config.timezone == "America/Chicago"
    section = config.sections[0]
    assert section.timezone == "America/Chicago"
    assert section.meetings[0].days == ["Monday", "Wednesday", "Friday"]
    assert section.meetings[0].start_time == "09:50"
    assert section.additional_holidays[0].name == "Section trip"
    assert config.lectures[0].lecture_id == "intro"
    assert config.assignments[0].due_time == "17:00"
    assert config.assignments[0].assigned_date == "2026-01-16"
    assert config.canvas.course_id == "42"
    assert config.canvas.sync_homepage is False
    assert config.canvas.sync_modules is True
    assert config.labs is None
    assert config.lab_sections is None


def test_load_json(tmp_path):
    path = tmp_path / "course.json"
    path.write_text(json.dumps(_base_config()), encoding="utf-8")

    assert load_course_config(path).semester == "Spring 2026"


def test_load_raw_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError, match="not found"):
        load_raw_config(tmp_path / "missing.yaml")

    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_raw_config(path)


def test_missing_required_field_is_reported(tmp_path):
    raw = _base_config()
    del raw["startDate"]
    path = tmp_path / "course.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ValueError, match="start_date"):
        load_course_config(path)


def test_unknown_weekday_is_rejected(tmp_path):
    raw = _base_config()
    raw["sections"][0]["meetings"][0]["days"] = ["Funday"]
    path = tmp_path / "course.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown weekday"):
        load_course_config(path)


def test_build_course_schedule_writes_artifacts(tmp_path):
    path = tmp_path / "course.yaml"
    path.write_text(yaml.safe_dump(_base_config()), encoding="utf-8")

    result = build_course_schedule(config_path=path, output_dir=tmp_path / "out")

    entries = result.schedule.schedule_by_section["01"]
    assert [entry.is_cancelled for entry in entries] == [False, True, True]
    assert result.warnings == ["No lab sections configured for CS 101."]
    assert sorted(result.output_paths) == [
        "schedule_html",
        "schedule_ics",
        "schedule_json",
        "schedule_markdown",
    ]
    assert (tmp_path / "out" / "schedule.ics").exists()


def test_build_course_schedule_validates_by_default(tmp_path):
    raw = _base_config()
    raw["lectures"][0]["sections"] = ["nope"]
    path = tmp_path / "course.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")

    with pytest.raises(ValidationError, match="unknown section: nope"):
        build_course_schedule(config_path=path)

    result = build_course_schedule(config_path=path, validate=False)
    assert result.output_paths == {}


def test_sample_config_builds():
    result = build_course_schedule(config_path=SAMPLE_CONFIG)

    assert result.schedule.lab_schedule_by_section is not None
    assert result.schedule.schedule_by_section["01"][0].date == "2026-01-12"
    assert result.warnings == []
