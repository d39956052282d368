"""Reservations repository - persistence for reservation and guest rows.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from psycopg2.extensions import cursor as PgCursor

_RESERVATION_COLUMNS = (
    "id",
    "booking_number",
    "property_id",
    "check_in",
    "check_out",
    "status",
    "nights",
    "guest_count",
    "source",
    "total_amount",
    "rate_calculation",
    "created_at",
)


def fetch_overlapping(
    cur: PgCursor,
    *,
    property_id: str,
    check_in: date,
    check_out: date,
    statuses: Sequence[str],
    exclude_reservation_id: str | None = None,
) -> list[tuple[str, date, date, str]]:
    """Fetch reservations whose [check_in, check_out) intersects the range.

    Overlap formula: existing.check_in < new.check_out AND
    existing.check_out > new.check_in. Strict inequality lets a stay begin
    on another stay's check-out day.

    Returns:
        List of (id, check_in, check_out, status) ordered by check_in.
    """
    conditions = [
        "property_id = %s",
        "status = ANY(%s::reservation_status[])",
        "check_in < %s",
        "check_out > %s",
    ]
    params: list = [property_id, list(statuses), check_out, check_in]

    if exclude_reservation_id is not None:
        conditions.append("id != %s")
        params.append(exclude_reservation_id)

    where = " AND ".join(conditions)
    cur.execute(
        f"""
        SELECT id, check_in, check_out, status
        FROM reservations
        WHERE {where}
        ORDER BY check_in, id
        """,
        params,
    )
    return [(str(r[0]), r[1], r[2], r[3]) for r in cur.fetchall()]


def insert_reservation(
    cur: PgCursor,
    *,
    booking_number: str,
    property_id: str,
    check_in: date,
    check_out: date,
    status: str,
    nights: int,
    guest_count: int,
    guest_name: str,
    guest_email: str,
    guest_phone: str,
    special_requests: str | None,
    source: str,
    created_by: str | None,
    amounts: dict[str, Decimal],
    rate_calculation: dict[str, Any],
) -> tuple[str, Any]:
    """Insert a reservation row with its embedded rate calculation.

    Returns:
        Tuple of (reservation_id, created_at).
    """
    cur.execute(
        """
        INSERT INTO reservations (
            booking_number, property_id, check_in, check_out, status,
            nights, guest_count, guest_name, guest_email, guest_phone,
            special_requests, source, created_by,
            base_amount, weekend_premium_amount, seasonal_premium_amount,
            holiday_premium_amount, extra_bed_amount, cleaning_fee,
            minimum_stay_discount, tax_amount, total_amount,
            rate_calculation
        )
        VALUES (
            %s, %s, %s, %s, %s::reservation_status,
            %s, %s, %s, %s, %s,
            %s, %s, %s,
            %s, %s, %s,
            %s, %s, %s,
            %s, %s, %s,
            %s::jsonb
        )
        RETURNING id, created_at
        """,
        (
            booking_number,
            property_id,
            check_in,
            check_out,
            status,
            nights,
            guest_count,
            guest_name,
            guest_email,
            guest_phone,
            special_requests,
            source,
            created_by,
            amounts["base_amount"],
            amounts["weekend_premium"],
            amounts["seasonal_premium"],
            amounts["holiday_premium"],
            amounts["extra_bed_amount"],
            amounts["cleaning_fee"],
            amounts["minimum_stay_discount"],
            amounts["tax_amount"],
            amounts["total_amount"],
            json.dumps(rate_calculation, default=str),
        ),
    )
    row = cur.fetchone()
    return str(row[0]), row[1]


def insert_guest(
    cur: PgCursor,
    *,
    reservation_id: str,
    guest_type: str,
    full_name: str,
    email: str | None = None,
    phone: str | None = None,
    gender: str | None = None,
    age_category: str = "adult",
    relationship_to_primary: str | None = None,
    notes: str | None = None,
) -> None:
    """Insert one guest-detail row owned by the reservation."""
    cur.execute(
        """
        INSERT INTO booking_guests (
            reservation_id, guest_type, full_name, email, phone,
            gender, age_category, relationship_to_primary, notes
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            reservation_id,
            guest_type,
            full_name,
            email,
            phone,
            gender,
            age_category,
            relationship_to_primary,
            notes,
        ),
    )


def get_reservation(
    cur: PgCursor,
    reservation_id: str,
    *,
    lock: bool = False,
) -> dict[str, Any] | None:
    """Get a reservation by id, optionally locking the row."""
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"""
        SELECT {", ".join(_RESERVATION_COLUMNS)}
        FROM reservations
        WHERE id = %s
        {suffix}
        """,
        (reservation_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    data = dict(zip(_RESERVATION_COLUMNS, row))
    data["id"] = str(data["id"])
    data["property_id"] = str(data["property_id"])
    return data


def update_status(cur: PgCursor, *, reservation_id: str, status: str) -> None:
    """Set a reservation's status. Callers validate the transition first."""
    cur.execute(
        """
        UPDATE reservations
        SET status = %s::reservation_status, updated_at = now()
        WHERE id = %s
        """,
        (status, reservation_id),
    )
