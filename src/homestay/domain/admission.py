"""Booking admission - the single path by which a reservation is created.

Orchestrates one decision per attempt inside a single DB transaction:
lock property -> check overlap -> re-validate -> price -> insert
reservation, guests, workflow and outbox rows -> commit.

The property row lock serializes admissions for the same property, so the
overlap check and the insert form one atomic decision. Lock timeouts,
deadlocks and serialization failures roll the attempt back and the whole
protocol runs again, up to ADMISSION_MAX_ATTEMPTS. In-process subscribers
are notified only after commit, outside the retry loop.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import psycopg2

from homestay.domain.availability import booked_dates, booked_periods, find_conflicts
from homestay.domain.booking_numbers import next_booking_number
from homestay.domain.booking_status import (
    Actor,
    ActorRole,
    initial_status,
    record_creation,
)
from homestay.domain.errors import BookingError, ErrorKind, PricingDataError
from homestay.domain.events import BookingCreated, publish
from homestay.domain.pricing import RateCalculation, calculate
from homestay.domain.quote import load_pricing_inputs, property_not_found
from homestay.domain.stay_rules import validate_dates, validate_stay
from homestay.infra.db import is_exclusion_violation, is_retryable, set_lock_timeout, txn
from homestay.infra.repositories.outbox_repository import emit_booking_created
from homestay.infra.repositories.reservations_repository import (
    get_reservation,
    insert_guest,
    insert_reservation,
)
from homestay.infra.repositories.workflow_repository import list_workflow
from homestay.infra.settings import Settings, get_settings
from homestay.infra.time import local_today
from homestay.observability.correlation import get_correlation_id
from homestay.observability.logging import get_logger
from homestay.observability.redaction import safe_log_context

logger = get_logger(__name__)

__all__ = [
    "Actor",
    "ActorRole",
    "BookingRequest",
    "GuestDetail",
    "Reservation",
    "create_booking",
    "get_booking",
]


@dataclass(frozen=True)
class GuestDetail:
    full_name: str
    email: str | None = None
    phone: str | None = None
    gender: str | None = None
    age_category: str = "adult"
    relationship_to_primary: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class BookingRequest:
    """A candidate stay as submitted by a guest or staff member.

    Dates may be ISO strings or dates; they are validated, not trusted.
    `guests` holds additional guest details beyond the primary contact.
    """

    check_in: str | date
    check_out: str | date
    guest_count: int
    guest_name: str
    guest_email: str
    guest_phone: str
    special_requests: str | None = None
    guests: tuple[GuestDetail, ...] = ()


@dataclass(frozen=True)
class Reservation:
    id: str
    booking_number: str
    property_id: str
    check_in: date
    check_out: date
    status: str
    nights: int
    guest_count: int
    source: str
    created_by: str | None
    rate: RateCalculation
    created_at: datetime | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "booking_number": self.booking_number,
            "property_id": self.property_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "status": self.status,
            "nights": self.nights,
            "guest_count": self.guest_count,
            "source": self.source,
            "total_amount": self.rate.total_amount,
            "rate_calculation": self.rate.to_dict(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class _Rejected(Exception):
    """Aborts the admission transaction with a business outcome."""

    def __init__(self, error: BookingError):
        self.error = error
        super().__init__(error.kind.value)


def _conflict_error(conflicts, check_in: date, check_out: date) -> BookingError:
    return BookingError(
        kind=ErrorKind.AVAILABILITY_CONFLICT,
        message="Selected dates are not available",
        booked_dates=tuple(booked_dates(conflicts, check_in, check_out)),
        booked_periods=tuple(booked_periods(conflicts)),
    )


def _admit_once(
    property_id: str,
    request: BookingRequest,
    actor: Actor,
    check_in: date,
    check_out: date,
    today: date,
    settings: Settings,
    correlation_id: str | None,
) -> Reservation:
    """One attempt of the admission protocol in its own transaction.

    Raises:
        _Rejected: Business outcome; the transaction is rolled back.
        psycopg2.Error: Database failure; the caller classifies it.
    """
    with txn() as cur:
        set_lock_timeout(cur, settings.admission_lock_timeout_ms)

        inputs = load_pricing_inputs(cur, property_id, check_in, check_out, lock=True)
        if inputs is None:
            raise _Rejected(property_not_found(property_id))
        prop, seasonal = inputs

        conflicts = find_conflicts(cur, property_id, check_in, check_out)
        if conflicts:
            raise _Rejected(_conflict_error(conflicts, check_in, check_out))

        # Property configuration may have changed since the advisory read
        error = validate_stay(prop, check_in, check_out, request.guest_count, seasonal)
        if error is not None:
            raise _Rejected(error)

        rate = calculate(prop, check_in, check_out, request.guest_count, seasonal)
        if isinstance(rate, BookingError):
            raise _Rejected(rate)

        booking_number = next_booking_number(cur, today)
        status = initial_status(actor)
        reservation_id, created_at = insert_reservation(
            cur,
            booking_number=booking_number,
            property_id=property_id,
            check_in=check_in,
            check_out=check_out,
            status=status.value,
            nights=rate.nights,
            guest_count=request.guest_count,
            guest_name=request.guest_name,
            guest_email=request.guest_email,
            guest_phone=request.guest_phone,
            special_requests=request.special_requests,
            source=actor.role.value,
            created_by=actor.id,
            amounts=rate.amounts(),
            rate_calculation=rate.to_dict(),
        )

        insert_guest(
            cur,
            reservation_id=reservation_id,
            guest_type="primary",
            full_name=request.guest_name,
            email=request.guest_email,
            phone=request.guest_phone,
        )
        for guest in request.guests:
            insert_guest(
                cur,
                reservation_id=reservation_id,
                guest_type="additional",
                full_name=guest.full_name,
                email=guest.email,
                phone=guest.phone,
                gender=guest.gender,
                age_category=guest.age_category,
                relationship_to_primary=guest.relationship_to_primary,
                notes=guest.notes,
            )

        record_creation(cur, reservation_id, actor)

        emit_booking_created(
            cur,
            property_id=property_id,
            reservation_id=reservation_id,
            booking_number=booking_number,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            nights=rate.nights,
            status=status.value,
            total_amount=str(rate.total_amount),
            actor_role=actor.role.value,
            correlation_id=correlation_id,
        )

    return Reservation(
        id=reservation_id,
        booking_number=booking_number,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        status=status.value,
        nights=rate.nights,
        guest_count=request.guest_count,
        source=actor.role.value,
        created_by=actor.id,
        rate=rate,
        created_at=created_at,
    )


def _validate_request(
    property_id: str,
    request: BookingRequest,
    today: date,
) -> tuple[date, date] | BookingError:
    """Checks that need no lock: dates, then an advisory read for capacity
    and minimum stay. Everything here is repeated under the lock."""
    dates = validate_dates(request.check_in, request.check_out, today)
    if isinstance(dates, BookingError):
        return dates
    check_in, check_out = dates

    with txn() as cur:
        inputs = load_pricing_inputs(cur, property_id, check_in, check_out)
    if inputs is None:
        return property_not_found(property_id)
    prop, seasonal = inputs

    error = validate_stay(prop, check_in, check_out, request.guest_count, seasonal)
    if error is not None:
        return error
    return check_in, check_out


def create_booking(
    property_id: str,
    request: BookingRequest,
    actor: Actor,
    *,
    today: date | None = None,
) -> Reservation | BookingError:
    """Admit a booking if and only if its dates are free.

    Args:
        property_id: Property to book.
        request: Candidate stay and guest details.
        actor: Guest (pending_verification) or staff (verified).
        today: Calendar date for the past-date check; defaults to today
            in the property timezone.

    Returns:
        The committed Reservation, or a BookingError: validation kinds
        before any transaction, AVAILABILITY_CONFLICT with the current
        booked dates/periods, or TRANSACTION_RETRY_EXHAUSTED.

    Raises:
        PricingDataError: Malformed property or seasonal-rate data.
        psycopg2.Error: Non-transient database failures.
    """
    settings = get_settings()
    today = today or local_today()
    correlation_id = get_correlation_id() or None
    log_ctx = {
        "property_id": property_id,
        "actor_role": actor.role.value,
        **safe_log_context(
            check_in=str(request.check_in),
            check_out=str(request.check_out),
            guest_count=request.guest_count,
            guest_email=request.guest_email,
        ),
    }

    validated = _validate_request(property_id, request, today)
    if isinstance(validated, BookingError):
        logger.info(
            "booking rejected by validation",
            extra={"extra_fields": {**log_ctx, "error_kind": validated.kind.value}},
        )
        return validated
    check_in, check_out = validated

    max_attempts = settings.admission_max_attempts
    for attempt in range(1, max_attempts + 1):
        logger.info(
            "admission attempt started",
            extra={"extra_fields": {**log_ctx, "attempt": attempt}},
        )
        try:
            reservation = _admit_once(
                property_id,
                request,
                actor,
                check_in,
                check_out,
                today,
                settings,
                correlation_id,
            )
        except _Rejected as rejected:
            logger.info(
                "booking rejected",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        "attempt": attempt,
                        "error_kind": rejected.error.kind.value,
                    },
                },
            )
            return rejected.error
        except PricingDataError:
            logger.exception(
                "pricing data error during admission",
                extra={"extra_fields": {**log_ctx, "attempt": attempt}},
            )
            raise
        except psycopg2.Error as exc:
            if is_exclusion_violation(exc):
                # Another writer got past the lock protocol; the database
                # constraint still refused the overlap.
                logger.warning(
                    "overlap rejected by database constraint",
                    extra={"extra_fields": {**log_ctx, "attempt": attempt}},
                )
                with txn() as cur:
                    conflicts = find_conflicts(cur, property_id, check_in, check_out)
                return _conflict_error(conflicts, check_in, check_out)
            if not is_retryable(exc):
                raise
            logger.warning(
                "admission attempt failed with retryable error",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "pgcode": getattr(exc, "pgcode", None),
                    },
                },
            )
            if attempt < max_attempts:
                time.sleep(settings.admission_retry_backoff_ms * attempt / 1000)
            continue

        logger.info(
            "booking admitted",
            extra={
                "extra_fields": {
                    **log_ctx,
                    "attempt": attempt,
                    "reservation_id": reservation.id,
                    "booking_number": reservation.booking_number,
                    "status": reservation.status,
                    "total_amount": str(reservation.rate.total_amount),
                },
            },
        )
        publish(BookingCreated(reservation, actor, correlation_id))
        return reservation

    logger.error(
        "admission retries exhausted",
        extra={"extra_fields": {**log_ctx, "attempts": max_attempts}},
    )
    return BookingError(
        kind=ErrorKind.TRANSACTION_RETRY_EXHAUSTED,
        message="The booking could not be completed due to contention. Please retry.",
        meta={"attempts": max_attempts},
    )


def get_booking(reservation_id: str) -> dict[str, Any] | BookingError:
    """Read a reservation with its embedded rate calculation and audit trail."""
    with txn() as cur:
        row = get_reservation(cur, reservation_id)
        workflow = list_workflow(cur, reservation_id) if row is not None else []
    if row is None:
        return BookingError(
            kind=ErrorKind.RESERVATION_NOT_FOUND,
            message=f"Reservation {reservation_id} not found",
        )
    return {
        "id": row["id"],
        "booking_number": row["booking_number"],
        "property_id": row["property_id"],
        "check_in": row["check_in"].isoformat(),
        "check_out": row["check_out"].isoformat(),
        "status": row["status"],
        "nights": row["nights"],
        "guest_count": row["guest_count"],
        "source": row["source"],
        "total_amount": row["total_amount"],
        "rate_calculation": row["rate_calculation"],
        "created_at": row["created_at"].isoformat() if row["created_at"] else None,
        "workflow": workflow,
    }
