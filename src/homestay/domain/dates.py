"""Calendar-date helpers shared by availability, pricing and stay rules.

All dates are timezone-less calendar dates. A stay [check_in, check_out)
occupies every night from check_in up to, but excluding, check_out.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator

# Friday and Saturday nights (date.weekday(): Monday == 0)
WEEKEND_NIGHTS = (4, 5)

# December, July, August
PEAK_MONTHS = (7, 8, 12)


def parse_date(value: str | date | None) -> date | None:
    """Parse a strict YYYY-MM-DD string. Returns None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        return None


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each occupied night in [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def is_weekend_night(day: date) -> bool:
    return day.weekday() in WEEKEND_NIGHTS


def is_peak_night(day: date) -> bool:
    return day.month in PEAK_MONTHS
