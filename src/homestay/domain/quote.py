"""Quote domain logic - advisory pricing for a candidate stay.

Reads the property and its seasonal rates without locks and runs the pure
rate calculator. The result may be stale by the time a booking is placed;
admission re-prices under the property lock.
"""

from __future__ import annotations

import logging
from datetime import date

from psycopg2.extensions import cursor as PgCursor

from homestay.domain.dates import parse_date
from homestay.domain.errors import BookingError, ErrorKind
from homestay.domain.pricing import PropertyConfig, RateCalculation, calculate
from homestay.domain.seasonal_rates import SeasonalRate, effective_rates
from homestay.infra.db import txn
from homestay.infra.repositories.properties_repository import (
    get_property,
    lock_property,
)

logger = logging.getLogger(__name__)


def load_pricing_inputs(
    cur: PgCursor,
    property_id: str,
    check_in: date,
    check_out: date,
    *,
    lock: bool = False,
) -> tuple[PropertyConfig, dict[date, SeasonalRate | None]] | None:
    """Property configuration and per-night seasonal rates for a stay.

    With lock=True the property row is read FOR UPDATE, which is how
    admission takes its per-property lock.

    Returns:
        (PropertyConfig, seasonal map), or None if the property is unknown.

    Raises:
        PricingDataError: If the property or a seasonal rate row is malformed.
    """
    row = lock_property(cur, property_id) if lock else get_property(cur, property_id)
    if row is None:
        return None
    prop = PropertyConfig.from_row(row)
    return prop, effective_rates(cur, property_id, check_in, check_out)


def property_not_found(property_id: str) -> BookingError:
    return BookingError(
        kind=ErrorKind.PROPERTY_NOT_FOUND,
        message=f"Property {property_id} not found",
    )


def quote_rate(
    property_id: str,
    check_in: str | date,
    check_out: str | date,
    guest_count: int,
) -> RateCalculation | BookingError:
    """Price a stay for display (calculateRate)."""
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
        inputs = load_pricing_inputs(cur, property_id, start, end)
    if inputs is None:
        return property_not_found(property_id)
    prop, seasonal = inputs

    if guest_count < 1 or guest_count > prop.capacity_max:
        return BookingError(
            kind=ErrorKind.CAPACITY_EXCEEDED,
            message=f"Guest count must be between 1 and {prop.capacity_max}",
            meta={"capacity_max": prop.capacity_max},
        )

    result = calculate(prop, start, end, guest_count, seasonal)
    if isinstance(result, RateCalculation):
        logger.debug(
            "quote calculated",
            extra={
                "extra_fields": {
                    "property_id": property_id,
                    "check_in": start.isoformat(),
                    "check_out": end.isoformat(),
                    "nights": result.nights,
                    "total_amount": str(result.total_amount),
                },
            },
        )
    return result
