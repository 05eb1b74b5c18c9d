from __future__ import annotations

from datetime import date, datetime, time


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def parse_hhmm(value: str) -> time:
    """Parse an `HH:MM` string (as used for the auto-checkout cutoff)."""
    parts = (value or "").strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid HH:MM time: {value!r}")
    return time(hour=int(parts[0]), minute=int(parts[1]))


def cutoff_for(day: date, value: str) -> datetime:
    return datetime.combine(day, parse_hhmm(value))


def whole_minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)
