"""Reservation status state machine.

Lifecycle:
    pending_verification -> verified -> pending_payment -> paid
    paid -> checked_in -> checked_out
    any non-terminal status -> cancelled

Every status change, including the initial one, writes a booking_workflow
row from this module, so the audit trail and the status column cannot
drift apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from psycopg2.extensions import cursor as PgCursor

from homestay.domain.errors import BookingError, ErrorKind
from homestay.infra.db import txn
from homestay.infra.repositories.reservations_repository import (
    get_reservation,
    update_status,
)
from homestay.infra.repositories.workflow_repository import insert_workflow_entry

logger = logging.getLogger(__name__)


class ReservationStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELLED = "cancelled"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"

    def __str__(self) -> str:
        return self.value


class ActorRole(str, Enum):
    GUEST = "guest"
    STAFF = "staff"


@dataclass(frozen=True)
class Actor:
    """Who is acting: a self-service guest or a staff member."""

    id: str | None
    role: ActorRole

    @property
    def is_staff(self) -> bool:
        return self.role is ActorRole.STAFF


INITIAL_STATUSES = frozenset(
    {ReservationStatus.PENDING_VERIFICATION, ReservationStatus.VERIFIED}
)

TERMINAL_STATUSES = frozenset(
    {ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT}
)

# Statuses that occupy the property's nights. Cancelled is the only status
# that releases them; unverified guest bookings still hold their dates.
BLOCKING_STATUSES: tuple[str, ...] = tuple(
    s.value for s in ReservationStatus if s is not ReservationStatus.CANCELLED
)

TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING_VERIFICATION: frozenset(
        {ReservationStatus.VERIFIED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.VERIFIED: frozenset(
        {ReservationStatus.PENDING_PAYMENT, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.PENDING_PAYMENT: frozenset(
        {ReservationStatus.PAID, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.PAID: frozenset(
        {ReservationStatus.CHECKED_IN, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CHECKED_IN: frozenset(
        {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.CHECKED_OUT: frozenset(),
}

# Workflow step names recorded for each target status
_STEP_FOR_STATUS = {
    ReservationStatus.VERIFIED: "approved",
    ReservationStatus.PENDING_PAYMENT: "payment_requested",
    ReservationStatus.PAID: "payment_received",
    ReservationStatus.CHECKED_IN: "checked_in",
    ReservationStatus.CHECKED_OUT: "checked_out",
    ReservationStatus.CANCELLED: "cancelled",
}


def can_transition(from_status: str, to_status: str) -> bool:
    try:
        source = ReservationStatus(from_status)
        target = ReservationStatus(to_status)
    except ValueError:
        return False
    return target in TRANSITIONS[source]


def initial_status(actor: Actor) -> ReservationStatus:
    """Staff bookings are verified on creation; guest bookings await review."""
    if actor.is_staff:
        return ReservationStatus.VERIFIED
    return ReservationStatus.PENDING_VERIFICATION


def initial_entries(
    actor: Actor,
) -> list[tuple[str, ReservationStatus | None, ReservationStatus, str]]:
    """Workflow rows written when a reservation is created.

    Returns:
        List of (step, from_status, to_status, notes).
    """
    entries: list[tuple[str, ReservationStatus | None, ReservationStatus, str]] = [
        (
            "submitted",
            None,
            ReservationStatus.PENDING_VERIFICATION,
            "Booking submitted",
        )
    ]
    if actor.is_staff:
        entries.append(
            (
                "approved",
                ReservationStatus.PENDING_VERIFICATION,
                ReservationStatus.VERIFIED,
                "Auto-approved: created by staff",
            )
        )
    return entries


def record_creation(cur: PgCursor, reservation_id: str, actor: Actor) -> None:
    """Write the creation workflow rows inside the admission transaction."""
    for step, from_status, to_status, notes in initial_entries(actor):
        insert_workflow_entry(
            cur,
            reservation_id=reservation_id,
            step=step,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            processed_by=actor.id,
            notes=notes,
        )


def transition_status(
    reservation_id: str,
    to_status: str,
    actor: Actor,
    notes: str | None = None,
) -> dict | BookingError:
    """Move a reservation to a new status and audit the change.

    Locks the reservation row so concurrent transitions serialize.

    Returns:
        {"reservation_id", "from_status", "to_status"} or a BookingError
        (RESERVATION_NOT_FOUND, INVALID_TRANSITION).
    """
    with txn() as cur:
        reservation = get_reservation(cur, reservation_id, lock=True)
        if reservation is None:
            return BookingError(
                kind=ErrorKind.RESERVATION_NOT_FOUND,
                message=f"Reservation {reservation_id} not found",
            )

        from_status = reservation["status"]
        if not can_transition(from_status, to_status):
            return BookingError(
                kind=ErrorKind.INVALID_TRANSITION,
                message=f"Cannot move reservation from {from_status} to {to_status}",
                meta={"from_status": from_status, "to_status": to_status},
            )

        target = ReservationStatus(to_status)
        update_status(cur, reservation_id=reservation_id, status=target.value)
        insert_workflow_entry(
            cur,
            reservation_id=reservation_id,
            step=_STEP_FOR_STATUS[target],
            from_status=from_status,
            to_status=target.value,
            processed_by=actor.id,
            notes=notes,
        )

    logger.info(
        "reservation status changed",
        extra={
            "extra_fields": {
                "reservation_id": reservation_id,
                "from_status": from_status,
                "to_status": target.value,
                "actor_role": actor.role.value,
            },
        },
    )
    return {
        "reservation_id": reservation_id,
        "from_status": from_status,
        "to_status": target.value,
    }
