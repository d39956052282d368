"""Seasonal rate resolution and write-time overlap enforcement.

A seasonal rate overrides nightly pricing for one property over an
inclusive [start_date, end_date] range. Active rates of one property must
never overlap; this is checked on every create/update under the property
row lock, independently of reservation overlap.

Overlap formula (inclusive):  a.start <= b.end AND b.start <= a.end
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

from psycopg2.extensions import cursor as PgCursor

from homestay.domain.dates import is_weekend_night, iter_nights
from homestay.domain.errors import BookingError, ErrorKind, PricingDataError
from homestay.infra.db import txn
from homestay.infra.repositories.properties_repository import (
    get_property,
    lock_property,
)
from homestay.infra.repositories.seasonal_rates_repository import (
    deactivate_rate,
    fetch_active_in_range,
    find_first_overlapping_active,
    get_rate,
    insert_rate,
    list_for_property,
    update_rate,
)

logger = logging.getLogger(__name__)


class RateType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class SeasonalRate:
    id: str
    property_id: str
    name: str
    start_date: date
    end_date: date
    rate_type: RateType
    rate_value: Decimal
    priority: int = 0
    min_stay_nights: int | None = None
    applies_to_weekends_only: bool = False
    is_active: bool = True
    description: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> SeasonalRate:
        """Build from a repository row.

        Raises:
            PricingDataError: If the stored row is malformed (unknown
                rate_type, inverted range, non-numeric value).
        """
        try:
            rate_type = RateType(row["rate_type"])
        except ValueError:
            raise PricingDataError(
                f"seasonal rate {row['id']} has unknown rate_type {row['rate_type']!r}"
            ) from None
        try:
            rate_value = Decimal(str(row["rate_value"]))
        except InvalidOperation:
            raise PricingDataError(
                f"seasonal rate {row['id']} has non-numeric rate_value"
            ) from None
        if row["end_date"] < row["start_date"]:
            raise PricingDataError(
                f"seasonal rate {row['id']} ends before it starts"
            )

        return cls(
            id=str(row["id"]),
            property_id=str(row["property_id"]),
            name=row.get("name") or "",
            start_date=row["start_date"],
            end_date=row["end_date"],
            rate_type=rate_type,
            rate_value=rate_value,
            priority=row.get("priority") or 0,
            min_stay_nights=row.get("min_stay_nights"),
            applies_to_weekends_only=bool(row.get("applies_to_weekends_only")),
            is_active=bool(row.get("is_active", True)),
            description=row.get("description"),
        )

    def contains(self, day: date) -> bool:
        """True if day falls inside the inclusive [start_date, end_date]."""
        return self.start_date <= day <= self.end_date

    def applies_on(self, day: date) -> bool:
        """True if the rate prices this night (weekends-only rates: Fri/Sat)."""
        if not self.contains(day):
            return False
        if self.applies_to_weekends_only and not is_weekend_night(day):
            return False
        return True

    def nightly_rate(self, base_rate: Decimal) -> Decimal:
        """Nightly price this rate yields on its own for a given base rate."""
        if self.rate_type is RateType.FIXED:
            return self.rate_value
        return base_rate + base_rate * self.rate_value / Decimal(100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "rate_type": self.rate_type.value,
            "rate_value": self.rate_value,
            "priority": self.priority,
            "min_stay_nights": self.min_stay_nights,
            "applies_to_weekends_only": self.applies_to_weekends_only,
            "is_active": self.is_active,
            "description": self.description,
        }


def ranges_overlap_inclusive(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> bool:
    return a_start <= b_end and b_start <= a_end


def _tie_break_key(rate: SeasonalRate) -> tuple:
    # highest priority first, then earliest start, then id for stability
    return (-rate.priority, rate.start_date, rate.id)


def resolve_effective_rates(
    rates: Iterable[SeasonalRate],
    start: date,
    end: date,
) -> dict[date, SeasonalRate | None]:
    """Map each night in [start, end) to at most one active seasonal rate.

    More than one candidate means the write-time non-overlap invariant was
    broken; the choice is still deterministic and the defect is logged.
    """
    active = sorted((r for r in rates if r.is_active), key=_tie_break_key)
    resolved: dict[date, SeasonalRate | None] = {}

    for day in iter_nights(start, end):
        candidates = [r for r in active if r.contains(day)]
        if len(candidates) > 1:
            logger.warning(
                "overlapping active seasonal rates",
                extra={
                    "extra_fields": {
                        "property_id": candidates[0].property_id,
                        "date": day.isoformat(),
                        "seasonal_rate_ids": [r.id for r in candidates],
                        "chosen_id": candidates[0].id,
                    },
                },
            )
        resolved[day] = candidates[0] if candidates else None

    return resolved


def load_active_rates(
    cur: PgCursor,
    property_id: str,
    start: date,
    end: date,
) -> list[SeasonalRate]:
    """Active seasonal rates touching the nights of [start, end)."""
    if end <= start:
        return []
    last_night = date.fromordinal(end.toordinal() - 1)
    rows = fetch_active_in_range(cur, property_id=property_id, start=start, end=last_night)
    return [SeasonalRate.from_row(r) for r in rows]


def effective_rates(
    cur: PgCursor,
    property_id: str,
    start: date,
    end: date,
) -> dict[date, SeasonalRate | None]:
    """Per-night seasonal rate for a property over [start, end)."""
    return resolve_effective_rates(load_active_rates(cur, property_id, start, end), start, end)


def validate_no_overlap(
    cur: PgCursor,
    property_id: str,
    start: date,
    end: date,
    exclude_id: str | None = None,
) -> BookingError | None:
    """Reject a range intersecting any other active rate of the property."""
    existing = find_first_overlapping_active(
        cur,
        property_id=property_id,
        start_date=start,
        end_date=end,
        exclude_id=exclude_id,
    )
    if existing is None:
        return None

    logger.info(
        "seasonal rate overlap rejected",
        extra={
            "extra_fields": {
                "property_id": property_id,
                "requested_start": start.isoformat(),
                "requested_end": end.isoformat(),
                "existing_id": existing["id"],
            },
        },
    )
    return BookingError(
        kind=ErrorKind.SEASONAL_RATE_OVERLAP,
        message=(
            f"Date range overlaps with existing seasonal rate "
            f"{existing['name']!r} ({existing['start_date']} to {existing['end_date']})"
        ),
        meta={"existing_id": existing["id"]},
    )


def _validate_payload(data: dict[str, Any]) -> BookingError | None:
    if data["end_date"] < data["start_date"]:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="end_date must be on or after start_date",
        )
    if data["rate_type"] not in {t.value for t in RateType}:
        return BookingError(
            kind=ErrorKind.INVALID_RATE,
            message=f"rate_type must be one of: {', '.join(t.value for t in RateType)}",
        )
    if Decimal(str(data["rate_value"])) < 0:
        return BookingError(kind=ErrorKind.INVALID_RATE, message="rate_value must be >= 0")
    min_stay = data.get("min_stay_nights")
    if min_stay is not None and min_stay < 1:
        return BookingError(kind=ErrorKind.INVALID_RATE, message="min_stay_nights must be >= 1")
    return None


def create_seasonal_rate(
    property_id: str,
    data: dict[str, Any],
) -> SeasonalRate | BookingError:
    """Create a seasonal rate after checking it against active rates.

    The property row is locked so two concurrent writers cannot both pass
    the overlap check.
    """
    error = _validate_payload(data)
    if error is not None:
        return error

    with txn() as cur:
        if lock_property(cur, property_id) is None:
            return BookingError(
                kind=ErrorKind.PROPERTY_NOT_FOUND,
                message=f"Property {property_id} not found",
            )

        if data.get("is_active", True):
            error = validate_no_overlap(cur, property_id, data["start_date"], data["end_date"])
            if error is not None:
                return error

        rate_id = insert_rate(cur, property_id=property_id, data=data)
        row = get_rate(cur, property_id=property_id, rate_id=rate_id)

    logger.info(
        "seasonal rate created",
        extra={"extra_fields": {"property_id": property_id, "seasonal_rate_id": rate_id}},
    )
    return SeasonalRate.from_row(row)


def update_seasonal_rate(
    property_id: str,
    rate_id: str,
    data: dict[str, Any],
) -> SeasonalRate | BookingError | None:
    """Update a seasonal rate, excluding itself from the overlap check.

    Returns None if the rate does not exist.
    """
    error = _validate_payload(data)
    if error is not None:
        return error

    with txn() as cur:
        if lock_property(cur, property_id) is None:
            return BookingError(
                kind=ErrorKind.PROPERTY_NOT_FOUND,
                message=f"Property {property_id} not found",
            )
        if get_rate(cur, property_id=property_id, rate_id=rate_id) is None:
            return None

        if data.get("is_active", True):
            error = validate_no_overlap(
                cur,
                property_id,
                data["start_date"],
                data["end_date"],
                exclude_id=rate_id,
            )
            if error is not None:
                return error

        update_rate(cur, property_id=property_id, rate_id=rate_id, data=data)
        row = get_rate(cur, property_id=property_id, rate_id=rate_id)

    return SeasonalRate.from_row(row)


def deactivate_seasonal_rate(property_id: str, rate_id: str) -> bool:
    """Mark a seasonal rate inactive. Returns False if it does not exist."""
    with txn() as cur:
        return deactivate_rate(cur, property_id=property_id, rate_id=rate_id)


def list_seasonal_rates(property_id: str) -> list[SeasonalRate]:
    with txn() as cur:
        rows = list_for_property(cur, property_id)
    return [SeasonalRate.from_row(r) for r in rows]


def rate_calendar(
    property_id: str,
    start: date,
    end: date,
) -> list[dict[str, Any]] | BookingError:
    """Per-night base and seasonal pricing view for admin calendars.

    Covers [start, end). Weekend and holiday premiums are not included;
    use the rate calculator for a full quote.
    """
    if end <= start:
        return BookingError(kind=ErrorKind.INVALID_RANGE, message="end must be after start")
    if (end - start).days > 366:
        return BookingError(kind=ErrorKind.INVALID_RANGE, message="max range: 366 days")

    with txn() as cur:
        prop = get_property(cur, property_id)
        if prop is None:
            return BookingError(
                kind=ErrorKind.PROPERTY_NOT_FOUND,
                message=f"Property {property_id} not found",
            )
        resolved = effective_rates(cur, property_id, start, end)

    base_rate = Decimal(str(prop["base_rate"]))
    days = []
    for day, rate in resolved.items():
        applied = rate if rate is not None and rate.applies_on(day) else None
        days.append(
            {
                "date": day.isoformat(),
                "base_rate": base_rate,
                "is_weekend": is_weekend_night(day),
                "seasonal_rate": (
                    {
                        "id": applied.id,
                        "name": applied.name,
                        "type": applied.rate_type.value,
                        "value": applied.rate_value,
                        "calculated_rate": applied.nightly_rate(base_rate),
                    }
                    if applied is not None
                    else None
                ),
            }
        )
    return days
