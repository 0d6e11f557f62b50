"""Shared date and clock helpers."""

from __future__ import annotations

from calendar import monthrange
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(month: date) -> tuple[date, date]:
    """Return first and last day of the month containing ``month``."""
    last_day = monthrange(month.year, month.month)[1]
    return month.replace(day=1), month.replace(day=last_day)


def parse_month(value: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    try:
        year_text, month_text = value.split("-")
        return date(int(year_text), int(month_text), 1)
    except ValueError as exc:
        raise ValueError(f"Expected YYYY-MM month value, got {value!r}") from exc


def clock_to_minutes(value: str | time) -> int:
    """Convert ``HH:MM`` (or a time) into minutes after midnight."""
    if isinstance(value, str):
        value = time.fromisoformat(value)
    return value.hour * 60 + value.minute


def minutes_to_clock(minutes: int) -> str:
    """Format minutes after midnight as zero padded ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
