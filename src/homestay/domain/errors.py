"""Explicit error-kind results for booking operations.

Business validation never raises. Public operations return either their
value or a BookingError, and every caller branches on the kind. Exceptions
are reserved for defects (PricingDataError) and infrastructure failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    INVALID_RANGE = "INVALID_RANGE"
    PAST_DATE = "PAST_DATE"
    MIN_STAY_VIOLATION = "MIN_STAY_VIOLATION"
    MAX_STAY_EXCEEDED = "MAX_STAY_EXCEEDED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    AVAILABILITY_CONFLICT = "AVAILABILITY_CONFLICT"
    SEASONAL_RATE_OVERLAP = "SEASONAL_RATE_OVERLAP"
    TRANSACTION_RETRY_EXHAUSTED = "TRANSACTION_RETRY_EXHAUSTED"
    PROPERTY_NOT_FOUND = "PROPERTY_NOT_FOUND"
    RESERVATION_NOT_FOUND = "RESERVATION_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_RATE = "INVALID_RATE"


# Kinds detected before any transaction opens
VALIDATION_KINDS = frozenset(
    {
        ErrorKind.INVALID_RANGE,
        ErrorKind.PAST_DATE,
        ErrorKind.MIN_STAY_VIOLATION,
        ErrorKind.MAX_STAY_EXCEEDED,
        ErrorKind.CAPACITY_EXCEEDED,
        ErrorKind.INVALID_RATE,
    }
)


@dataclass(frozen=True)
class BookingError:
    """A categorized, actionable failure.

    booked_dates / booked_periods are populated for AVAILABILITY_CONFLICT so
    the caller can redraw its calendar without a second round trip.
    """

    kind: ErrorKind
    message: str
    booked_dates: tuple[date, ...] | None = None
    booked_periods: tuple[tuple[date, date], ...] | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "errorKind": self.kind.value,
            "message": self.message,
        }
        if self.booked_dates is not None:
            body["bookedDates"] = [d.isoformat() for d in self.booked_dates]
        if self.booked_periods is not None:
            body["bookedPeriods"] = [
                [start.isoformat(), end.isoformat()]
                for start, end in self.booked_periods
            ]
        if self.meta:
            body["meta"] = self.meta
        return body


class PricingDataError(Exception):
    """Malformed pricing data (property or seasonal rate) found while pricing.

    Indicates a data-integrity defect, not a transient condition: it is
    logged and propagated, never retried.
    """
