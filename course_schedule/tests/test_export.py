from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest

from course_schedule.export import (
    render_schedule_html,
    to_icalendar,
    to_json,
    to_markdown_table,
    write_schedule_artifacts,
)
from course_schedule.generator import generate_schedule
from course_schedule.models import CourseConfig


def _base_config() -> dict:
    return {
        "course_code": "CS 101",
        "course_title": "Intro to Computing",
        "semester": "Spring 2026",
        "start_date": "2026-01-12",
        "end_date": "2026-01-16",
        "timezone": "America/New_York",
        "sections": [
            {
                "id": "01",
                "name": "MWF",
                "meetings": [
                    {
                        "days": ["Mon", "Wed", "Fri"],
                        "start_time": "09:50",
                        "end_time": "10:55",
                        "location": "Hall 1, Room 2",
                    }
                ],
            },
            {
                "id": "02",
                "name": "TTh",
                "meetings": [{"days": ["Tue", "Thu"], "start_time": "14:00", "end_time": "15:15"}],
            },
        ],
        "holidays": [{"date": "2026-01-14", "name": "Reading Day", "type": "no-class"}],
        "lectures": [
            {
                "lecture_id": "lecture-01",
                "title": "Welcome",
                "dates": ["2026-01-12"],
                "sections": ["01"],
                "notes": "Syllabus; policies",
            },
            {
                "lecture_id": "lecture-02",
                "title": "Variables",
                "dates": ["2026-01-14"],
                "sections": ["01"],
            },
        ],
    }


def _schedule():
    return generate_schedule(CourseConfig.from_dict(_base_config()))


def _lines(text: str) -> list[str]:
    return text.splitlines()


def test_icalendar_skips_cancelled_entries_and_uses_floating_times():
    ics = to_icalendar(_schedule(), "01")
    lines = _lines(ics)

    assert lines[0] == "BEGIN:VCALENDAR"
    assert lines[-1] == "END:VCALENDAR"
    assert lines.count("BEGIN:VEVENT") == 2
    assert "DTSTART:20260112T095000" in lines
    assert "DTEND:20260112T105500" in lines
    assert not any(line.startswith(("DTSTART", "DTEND")) and line.endswith("Z") for line in lines)
    assert "20260114" not in ics
    assert "SUMMARY:Welcome" in lines
    assert "SUMMARY:CS 101 Class" in lines
    assert "LOCATION:Hall 1\\, Room 2" in lines
    assert "DESCRIPTION:Syllabus\\; policies" in lines
    assert "X-WR-TIMEZONE:America/New_York" in lines
    assert "X-WR-CALNAME:CS 101" in lines


def test_icalendar_uids_are_unique_and_stable():
    uids = [line for line in _lines(to_icalendar(_schedule())) if line.startswith("UID:")]

    assert "UID:2026-01-12-01-1@course-schedule" in uids
    assert "UID:2026-01-16-01-3@course-schedule" in uids
    assert len(uids) == len(set(uids)) == 4
    again = [line for line in _lines(to_icalendar(_schedule())) if line.startswith("UID:")]
    assert sorted(again) == sorted(uids)


def test_icalendar_writes_dtstamp_when_given():
    stamp = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    lines = _lines(to_icalendar(_schedule(), "01", dtstamp=stamp))

    assert lines.count("DTSTAMP:20260101T120000Z") == 2


def test_markdown_table_strikes_through_cancelled_rows():
    md = to_markdown_table(_schedule(), "01")

    assert "| # | Date | Day | Topic | Notes |" in md
    assert "| 1 | Jan 12 | Mon | Welcome | Syllabus; policies |" in md
    assert "| 2 | Jan 14 | Wed | ~~Variables~~ | Reading Day |" in md
    assert "| 3 | Jan 16 | Fri |  |  |" in md


def test_markdown_table_for_all_sections_lists_every_entry():
    md = to_markdown_table(_schedule())
    rows = [line for line in md.splitlines() if line.startswith("| ") and line[2].isdigit()]

    assert len(rows) == 5


def test_to_json_serializes_none_as_null():
    payload = json.loads(to_json(_schedule()))

    assert payload["lab_schedule_by_section"] is None
    assert len(payload["all_entries"]) == 5
    first = payload["schedule_by_section"]["01"][0]
    assert first["date"] == "2026-01-12"
    assert first["lecture"]["lecture_id"] == "lecture-01"
    assert first["holiday"] is None


def test_render_schedule_html_marks_rows():
    html_text = render_schedule_html(_schedule(), section_id="01", today=date(2026, 1, 14))

    assert "course-schedule-generated:start" in html_text
    assert 'class="past-row"' in html_text
    assert 'class="current-row cancelled-row"' in html_text
    assert 'class="upcoming-row"' in html_text
    assert "<em>Reading Day</em>" in html_text
    assert "<s><strong>Variables</strong></s>" in html_text


def test_write_schedule_artifacts_keeps_crlf(tmp_path):
    paths = write_schedule_artifacts(_schedule(), tmp_path / "out")

    assert set(paths) == {"schedule_json", "schedule_ics", "schedule_markdown", "schedule_html"}
    assert all(path.exists() for path in paths.values())
    assert b"\r\n" in paths["schedule_ics"].read_bytes()
    assert json.loads(paths["schedule_json"].read_text(encoding="utf-8"))["config"][
        "course_code"
    ] == "CS 101"


def test_unknown_section_raises_value_error():
    with pytest.raises(ValueError, match="Unknown section id"):
        to_markdown_table(_schedule(), "99")
