"""Holiday calendars used by the rate calculator.

The calculator only asks "is this date a holiday?", so alternative providers
(per-country tables, a DB-backed calendar) can be plugged in without touching
pricing code.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol


class HolidayCalendar(Protocol):
    """Provides holiday dates for a calendar year."""

    def holidays_for_year(self, year: int) -> frozenset[date]: ...

    def is_holiday(self, day: date) -> bool: ...


class FixedHolidayCalendar:
    """Year-independent holidays given as (month, day) pairs.

    Feb 29 entries are skipped in non-leap years.
    """

    def __init__(self, month_days: Iterable[tuple[int, int]]) -> None:
        self._month_days = tuple(sorted(set(month_days)))
        self._cache: dict[int, frozenset[date]] = {}

    def holidays_for_year(self, year: int) -> frozenset[date]:
        cached = self._cache.get(year)
        if cached is not None:
            return cached

        days = set()
        for month, day in self._month_days:
            try:
                days.add(date(year, month, day))
            except ValueError:
                continue
        result = frozenset(days)
        self._cache[year] = result
        return result

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays_for_year(day.year)


class NoHolidayCalendar:
    """Calendar without holidays."""

    def holidays_for_year(self, year: int) -> frozenset[date]:
        return frozenset()

    def is_holiday(self, day: date) -> bool:
        return False


# New Year, Independence Day (Aug 17), Christmas
DEFAULT_HOLIDAYS = FixedHolidayCalendar([(1, 1), (8, 17), (12, 25)])
