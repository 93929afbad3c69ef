"""
Date helpers for the scheduler and recurring appointment checks.

The scheduler works Monday to Friday and the recurrence editor shows dates
as ``M/D/YY`` (no leading zeros).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

# The recurrence editor's default "Until" is this many days ahead
DEFAULT_SERIES_DAYS = 52

SATURDAY = 5


def days_to_next_business_day(today: Optional[date] = None) -> int:
    """Clicks on the scheduler's Next button needed to reach the next working day."""
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    return 3 if tomorrow.weekday() == SATURDAY else 1


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def format_short_date(value: date) -> str:
    """``date(2026, 3, 7)`` -> ``"3/7/26"``."""
    return f"{value.month}/{value.day}/{value.year % 100:02d}"


def parse_short_date(text: str) -> date:
    """
    Parse ``M/D/YY`` (or ``M/D/YYYY``) as shown in the Until input.

    Raises:
        ValueError: Text is not a date in that form
    """
    cleaned = (text or "").strip()
    for fmt in ("%m/%d/%y", "%m/%d/%Y"):
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Not a M/D/YY date: {text!r}")


def default_series_end(today: Optional[date] = None) -> date:
    return add_days(today or date.today(), DEFAULT_SERIES_DAYS)


def within_days(a: date, b: date, tolerance: int = 1) -> bool:
    return abs((a - b).days) <= tolerance


def months_between(start: date, end: date) -> int:
    """Month steps from ``start`` to ``end`` (negative when going back)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def calendar_day_title(value: date) -> str:
    """Part of a calendar day cell title, e.g. ``"March 7, 2026"``."""
    return f"{value:%B} {value.day}, {value.year}"


def slot_hour(timestamp_ms: int) -> int:
    """Local hour of a scheduler cell's ``data-date`` (epoch milliseconds)."""
    return datetime.fromtimestamp(int(timestamp_ms) / 1000).hour


def is_business_hour_slot(timestamp_ms: int, start_hour: int = 8, end_hour: int = 17) -> bool:
    """True for cells starting at or after ``start_hour`` and before ``end_hour``."""
    return start_hour <= slot_hour(timestamp_ms) < end_hour


__all__ = [
    "DEFAULT_SERIES_DAYS",
    "add_days",
    "calendar_day_title",
    "days_to_next_business_day",
    "default_series_end",
    "format_short_date",
    "is_business_hour_slot",
    "months_between",
    "parse_short_date",
    "slot_hour",
    "within_days",
]
