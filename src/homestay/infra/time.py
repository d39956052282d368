"""Time utilities for consistent timestamp and calendar-date handling."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from homestay.infra.settings import get_settings


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def local_today() -> date:
    """Return today's calendar date in the property timezone."""
    return datetime.now(ZoneInfo(get_settings().property_timezone)).date()
