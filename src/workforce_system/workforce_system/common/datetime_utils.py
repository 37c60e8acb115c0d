from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def day_window(day: date) -> tuple[datetime, datetime]:
    """Half-open window [day 00:00, day+1 00:00)."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def period_window(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open datetime window covering the inclusive date range [start, end]."""
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def expected_working_days(start: date, end: date, weekdays: Iterable[int]) -> list[date]:
    allowed = set(weekdays)
    return [d for d in iter_days(start, end) if d.weekday() in allowed]
