"""Stay validation rules checked before any admission transaction opens."""

from __future__ import annotations

from datetime import date
from typing import Mapping

from homestay.domain.dates import (
    is_peak_night,
    is_weekend_night,
    iter_nights,
    nights_between,
    parse_date,
)
from homestay.domain.errors import BookingError, ErrorKind
from homestay.domain.pricing import PropertyConfig
from homestay.domain.seasonal_rates import SeasonalRate

MAX_STAY_NIGHTS = 365


def validate_dates(
    check_in: str | date | None,
    check_out: str | date | None,
    today: date,
) -> tuple[date, date] | BookingError:
    """Parse and validate a candidate stay.

    Returns:
        (check_in, check_out) as dates, or a BookingError with kind
        INVALID_RANGE, PAST_DATE or MAX_STAY_EXCEEDED.
    """
    start = parse_date(check_in)
    end = parse_date(check_out)
    if start is None or end is None:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="Invalid date format. Use YYYY-MM-DD (e.g. 2024-12-25)",
        )
    if end <= start:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="Check-out date must be after check-in date",
        )
    if start < today:
        return BookingError(
            kind=ErrorKind.PAST_DATE,
            message="Check-in date cannot be in the past",
            meta={"today": today.isoformat()},
        )
    nights = nights_between(start, end)
    if nights > MAX_STAY_NIGHTS:
        return BookingError(
            kind=ErrorKind.MAX_STAY_EXCEEDED,
            message=f"Booking period cannot exceed {MAX_STAY_NIGHTS} nights",
            meta={"nights": nights},
        )
    return start, end


def required_minimum_stay(
    prop: PropertyConfig,
    check_in: date,
    check_out: date,
    seasonal: Mapping[date, SeasonalRate | None] | None = None,
) -> int:
    """Largest minimum-stay requirement among the nights of the stay.

    Each night contributes the weekday, weekend (Fri/Sat) or peak-month
    minimum that applies to it, and a seasonal rate pricing that night
    contributes its own min_stay_nights.
    """
    seasonal = seasonal or {}
    required = 1
    for day in iter_nights(check_in, check_out):
        night_min = prop.min_stay_weekday
        if is_weekend_night(day):
            night_min = max(night_min, prop.min_stay_weekend)
        if is_peak_night(day):
            night_min = max(night_min, prop.min_stay_peak)
        rate = seasonal.get(day)
        if rate is not None and rate.applies_on(day) and rate.min_stay_nights:
            night_min = max(night_min, rate.min_stay_nights)
        required = max(required, night_min)
    return required


def validate_stay(
    prop: PropertyConfig,
    check_in: date,
    check_out: date,
    guest_count: int,
    seasonal: Mapping[date, SeasonalRate | None] | None = None,
) -> BookingError | None:
    """Capacity and minimum-stay checks against the property configuration."""
    if guest_count < 1:
        return BookingError(
            kind=ErrorKind.CAPACITY_EXCEEDED,
            message="At least one guest is required",
        )
    if guest_count > prop.capacity_max:
        return BookingError(
            kind=ErrorKind.CAPACITY_EXCEEDED,
            message=(
                f"Guest count cannot exceed property maximum capacity "
                f"({prop.capacity_max})"
            ),
            meta={"capacity_max": prop.capacity_max},
        )

    nights = nights_between(check_in, check_out)
    required = required_minimum_stay(prop, check_in, check_out, seasonal)
    if nights < required:
        return BookingError(
            kind=ErrorKind.MIN_STAY_VIOLATION,
            message=f"Minimum stay for the selected dates is {required} night(s)",
            meta={"required_nights": required, "nights": nights},
        )
    return None
