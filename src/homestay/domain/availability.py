"""Availability and overlap checking for property reservations.

Overlap formula for half-open stays A=[s1,e1) and B=[s2,e2):
    s1 < e2 AND s2 < e1
Strict inequality means the check-out day is never occupied, so a new stay
may begin exactly on another stay's check-out date.

BLOCKING_STATUSES is the single canonical set used by every overlap check,
calendar view and admission decision.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Sequence

from psycopg2.extensions import cursor as PgCursor

from homestay.domain.booking_status import BLOCKING_STATUSES
from homestay.domain.dates import is_weekend_night, iter_nights, parse_date
from homestay.domain.errors import BookingError, ErrorKind
from homestay.infra.db import txn
from homestay.infra.repositories.reservations_repository import fetch_overlapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationInterval:
    """A stay occupying [check_in, check_out)."""

    property_id: str
    check_in: date
    check_out: date
    id: str | None = None
    status: str | None = None

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
        }


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True if half-open ranges [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    cur: PgCursor,
    property_id: str,
    check_in: date,
    check_out: date,
    statuses: Sequence[str] = BLOCKING_STATUSES,
    exclude_reservation_id: str | None = None,
) -> list[ReservationInterval]:
    """Existing reservations of the property that overlap [check_in, check_out).

    Args:
        cur: Database cursor. During admission this runs inside the
            transaction holding the property row lock.
        property_id: Property identifier.
        check_in: Candidate check-in (inclusive).
        check_out: Candidate check-out (exclusive).
        statuses: Statuses that block; defaults to the canonical set.
        exclude_reservation_id: Reservation to ignore (date edits).

    Returns:
        Conflicting intervals ordered by check_in.
    """
    rows = fetch_overlapping(
        cur,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        statuses=[str(s) for s in statuses],
        exclude_reservation_id=exclude_reservation_id,
    )
    conflicts = [
        ReservationInterval(
            property_id=property_id,
            check_in=r[1],
            check_out=r[2],
            id=r[0],
            status=r[3],
        )
        for r in rows
    ]

    if conflicts:
        logger.info(
            "availability conflict detected",
            extra={
                "extra_fields": {
                    "property_id": property_id,
                    "requested_check_in": check_in.isoformat(),
                    "requested_check_out": check_out.isoformat(),
                    "conflicting_reservation_ids": [c.id for c in conflicts],
                },
            },
        )
    return conflicts


def booked_dates(
    intervals: Iterable[ReservationInterval],
    range_start: date,
    range_end: date,
) -> list[date]:
    """Occupied nights of the intervals, clipped to [range_start, range_end).

    Display only; never used for the authoritative admission decision.
    """
    dates: set[date] = set()
    for interval in intervals:
        start = max(interval.check_in, range_start)
        end = min(interval.check_out, range_end)
        dates.update(iter_nights(start, end))
    return sorted(dates)


def booked_periods(intervals: Iterable[ReservationInterval]) -> list[tuple[date, date]]:
    """Raw (check_in, check_out) pairs for range rendering."""
    return [(i.check_in, i.check_out) for i in intervals]


def next_available_window(
    cur: PgCursor,
    property_id: str,
    nights: int,
    horizon_days: int,
    today: date,
) -> ReservationInterval | None:
    """First `nights`-long window starting within the horizon with no conflicts.

    Scans start days today .. today + horizon_days against a single
    prefetched conflict set. Linear in the horizon, which stays small.
    """
    if nights < 1 or horizon_days < 0:
        return None

    scan_end = today + timedelta(days=horizon_days + nights)
    existing = find_conflicts(cur, property_id, today, scan_end)

    for offset in range(horizon_days + 1):
        start = today + timedelta(days=offset)
        end = start + timedelta(days=nights)
        if not any(overlaps(start, end, e.check_in, e.check_out) for e in existing):
            return ReservationInterval(property_id=property_id, check_in=start, check_out=end)
    return None


def check_availability(
    property_id: str,
    check_in: str | date,
    check_out: str | date,
) -> dict[str, Any] | BookingError:
    """Advisory, lock-free availability check for booking UIs.

    May observe slightly stale data; admission re-checks under the lock.

    Returns:
        {"available", "bookedDates", "bookedPeriods"} or
        BookingError(INVALID_RANGE).
    """
    start = parse_date(check_in)
    end = parse_date(check_out)
    if start is None or end is None:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="Invalid date format. Use YYYY-MM-DD",
        )
    if end <= start:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="Check-out date must be after check-in date",
        )

    with txn() as cur:
        conflicts = find_conflicts(cur, property_id, start, end)

    return {
        "property_id": property_id,
        "check_in": start.isoformat(),
        "check_out": end.isoformat(),
        "available": not conflicts,
        "bookedDates": [d.isoformat() for d in booked_dates(conflicts, start, end)],
        "bookedPeriods": [
            [s.isoformat(), e.isoformat()] for s, e in booked_periods(conflicts)
        ],
    }


def find_next_available(
    property_id: str,
    nights: int,
    horizon_days: int,
    today: date,
) -> ReservationInterval | None:
    """next_available_window in its own read transaction."""
    with txn() as cur:
        return next_available_window(cur, property_id, nights, horizon_days, today)


def _add_months(first_of_month: date, months: int) -> date:
    index = first_of_month.month - 1 + months
    return date(first_of_month.year + index // 12, index % 12 + 1, 1)


def availability_calendar(
    property_id: str,
    start_month: str,
    months: int,
    today: date,
) -> dict[str, Any] | BookingError:
    """Month grid with per-day booked/past/weekend flags (admin calendar).

    Args:
        start_month: "YYYY-MM".
        months: Number of months to render (1..12).
    """
    first = parse_date(f"{start_month}-01") if start_month else None
    if first is None or not 1 <= months <= 12:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="start_month must be YYYY-MM and months between 1 and 12",
        )

    period_end = _add_months(first, months)
    with txn() as cur:
        conflicts = find_conflicts(cur, property_id, first, period_end)
    booked = set(booked_dates(conflicts, first, period_end))

    grid = []
    month_start = first
    for _ in range(months):
        days_in_month = calendar.monthrange(month_start.year, month_start.month)[1]
        days = []
        for day_number in range(1, days_in_month + 1):
            day = month_start.replace(day=day_number)
            days.append(
                {
                    "date": day.isoformat(),
                    "day": day_number,
                    "is_booked": day in booked,
                    "is_past": day < today,
                    "is_weekend": is_weekend_night(day),
                }
            )
        grid.append(
            {
                "year": month_start.year,
                "month": month_start.month,
                "month_name": month_start.strftime("%B %Y"),
                "days": days,
            }
        )
        month_start = _add_months(month_start, 1)

    return {
        "property_id": property_id,
        "period": {
            "start": first.isoformat(),
            "end": (period_end - timedelta(days=1)).isoformat(),
        },
        "calendar": grid,
        "total_booked_days": len(booked),
    }
