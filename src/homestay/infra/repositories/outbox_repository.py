"""Outbox repository - durable event log written inside domain transactions.

Uses raw SQL with psycopg2 (no ORM).
"""

import json

from psycopg2.extensions import cursor as PgCursor


def emit_event(
    cur: PgCursor,
    *,
    property_id: str,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Emit an event to the outbox.

    The row commits or rolls back together with the aggregate it describes,
    so a rolled-back admission attempt leaves no event behind.

    Args:
        cur: Database cursor (within transaction).
        property_id: Property identifier.
        event_type: Event type (e.g., BOOKING_CREATED).
        aggregate_type: Aggregate type (e.g., reservation).
        aggregate_id: Aggregate ID (e.g., reservation UUID).
        payload: Optional JSON payload (no guest contact data).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        The generated event ID.
    """
    payload_json = json.dumps(payload, default=str) if payload else None

    cur.execute(
        """
        INSERT INTO outbox_events (
            property_id, event_type, aggregate_type,
            aggregate_id, payload, correlation_id
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            property_id,
            event_type,
            aggregate_type,
            aggregate_id,
            payload_json,
            correlation_id,
        ),
    )
    return cur.fetchone()[0]


def emit_booking_created(
    cur: PgCursor,
    *,
    property_id: str,
    reservation_id: str,
    booking_number: str,
    check_in: str,
    check_out: str,
    nights: int,
    status: str,
    total_amount: str,
    actor_role: str,
    correlation_id: str | None = None,
) -> int:
    """Emit BOOKING_CREATED event."""
    payload = {
        "booking_number": booking_number,
        "check_in": check_in,
        "check_out": check_out,
        "nights": nights,
        "status": status,
        "total_amount": total_amount,
        "actor_role": actor_role,
    }

    return emit_event(
        cur,
        property_id=property_id,
        event_type="BOOKING_CREATED",
        aggregate_type="reservation",
        aggregate_id=reservation_id,
        payload=payload,
        correlation_id=correlation_id,
    )
