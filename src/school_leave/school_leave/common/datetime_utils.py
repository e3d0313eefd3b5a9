from __future__ import annotations

from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def inclusive_day_count(start_date: date, end_date: date) -> int:
    """Number of calendar days from start to end, both included."""
    return (end_date - start_date).days + 1


def date_bucket(moment: date | datetime) -> str:
    """Partition key for a submission day, e.g. ``Jun_10``."""
    return f"{moment.strftime('%b')}_{moment.day}"
