"""Calendar arithmetic over timezone-naive ``YYYY-MM-DD`` civil dates."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator

ISO_DATE_FORMAT = "%Y-%m-%d"

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def parse_iso_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO date string, got: {value!r}")
    return datetime.strptime(value, ISO_DATE_FORMAT).date()


def format_iso_date(value: date) -> str:
    # strftime("%Y") does not zero-pad years below 1000 on every platform.
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def weekday_of(value: str | date) -> str:
    return WEEKDAYS[parse_iso_date(value).weekday()]


def iterate_days(start: str | date, end: str | date) -> Iterator[date]:
    """Yield every day from ``start`` through ``end`` inclusive.

    Each call builds a fresh generator, so the sweep can be restarted freely.
    Nothing is yielded when ``end`` precedes ``start``.
    """
    first = parse_iso_date(start)
    last = parse_iso_date(end)
    for offset in range((last - first).days + 1):
        yield first + timedelta(days=offset)


def within_inclusive(value: str | date, start: str | date, end: str | date) -> bool:
    return parse_iso_date(start) <= parse_iso_date(value) <= parse_iso_date(end)


def parse_hhmm(value: str) -> str:
    text = str(value or "").strip()
    try:
        parsed = datetime.strptime(text, "%H:%M").time()
    except ValueError as exc:
        raise ValueError(f"Expected time in HH:MM format, got: {value!r}") from exc
    return parsed.strftime("%H:%M")


def time_from_hhmm(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def minutes_since_midnight(value: str) -> int:
    parsed = time_from_hhmm(value)
    return parsed.hour * 60 + parsed.minute


def week_start_sunday(value: str | date) -> date:
    day = parse_iso_date(value)
    # date.weekday() is Monday=0; shift so Sunday opens the week.
    return day - timedelta(days=(day.weekday() + 1) % 7)
