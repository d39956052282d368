"""Seasonal rates repository - persistence for property_seasonal_rates.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import date
from typing import Any

from psycopg2.extensions import cursor as PgCursor

SEASONAL_RATE_COLUMNS = (
    "id",
    "property_id",
    "name",
    "start_date",
    "end_date",
    "rate_type",
    "rate_value",
    "priority",
    "min_stay_nights",
    "applies_to_weekends_only",
    "is_active",
    "description",
)

_SELECT = f"SELECT {', '.join(SEASONAL_RATE_COLUMNS)} FROM property_seasonal_rates"


def _row_to_dict(row: tuple[Any, ...]) -> dict[str, Any]:
    data = dict(zip(SEASONAL_RATE_COLUMNS, row))
    data["id"] = str(data["id"])
    data["property_id"] = str(data["property_id"])
    return data


def fetch_active_in_range(
    cur: PgCursor,
    *,
    property_id: str,
    start: date,
    end: date,
) -> list[dict[str, Any]]:
    """Active rates whose inclusive [start_date, end_date] touches [start, end].

    Both bounds are inclusive here.
    """
    cur.execute(
        f"""
        {_SELECT}
        WHERE property_id = %s
          AND is_active = true
          AND start_date <= %s
          AND end_date >= %s
        ORDER BY priority DESC, start_date, id
        """,
        (property_id, end, start),
    )
    return [_row_to_dict(r) for r in cur.fetchall()]


def list_for_property(cur: PgCursor, property_id: str) -> list[dict[str, Any]]:
    """All seasonal rates of a property (active and inactive)."""
    cur.execute(
        f"""
        {_SELECT}
        WHERE property_id = %s
        ORDER BY start_date, id
        """,
        (property_id,),
    )
    return [_row_to_dict(r) for r in cur.fetchall()]


def get_rate(cur: PgCursor, *, property_id: str, rate_id: str) -> dict[str, Any] | None:
    cur.execute(
        f"{_SELECT} WHERE property_id = %s AND id = %s",
        (property_id, rate_id),
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def find_first_overlapping_active(
    cur: PgCursor,
    *,
    property_id: str,
    start_date: date,
    end_date: date,
    exclude_id: str | None = None,
) -> dict[str, Any] | None:
    """First active rate whose inclusive range intersects [start_date, end_date].

    Overlap formula (inclusive-inclusive):
        existing.start_date <= new.end_date AND existing.end_date >= new.start_date
    """
    conditions = [
        "property_id = %s",
        "is_active = true",
        "start_date <= %s",
        "end_date >= %s",
    ]
    params: list = [property_id, end_date, start_date]

    if exclude_id is not None:
        conditions.append("id != %s")
        params.append(exclude_id)

    cur.execute(
        f"""
        {_SELECT}
        WHERE {" AND ".join(conditions)}
        ORDER BY start_date, id
        LIMIT 1
        """,
        params,
    )
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def insert_rate(cur: PgCursor, *, property_id: str, data: dict[str, Any]) -> str:
    """Insert a seasonal rate and return its id."""
    cur.execute(
        """
        INSERT INTO property_seasonal_rates (
            property_id, name, start_date, end_date, rate_type, rate_value,
            priority, min_stay_nights, applies_to_weekends_only, is_active,
            description
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            property_id,
            data["name"],
            data["start_date"],
            data["end_date"],
            data["rate_type"],
            data["rate_value"],
            data.get("priority", 0),
            data.get("min_stay_nights"),
            data.get("applies_to_weekends_only", False),
            data.get("is_active", True),
            data.get("description"),
        ),
    )
    return str(cur.fetchone()[0])


def update_rate(
    cur: PgCursor,
    *,
    property_id: str,
    rate_id: str,
    data: dict[str, Any],
) -> None:
    """Overwrite the mutable fields of a seasonal rate."""
    cur.execute(
        """
        UPDATE property_seasonal_rates
        SET name = %s,
            start_date = %s,
            end_date = %s,
            rate_type = %s,
            rate_value = %s,
            priority = %s,
            min_stay_nights = %s,
            applies_to_weekends_only = %s,
            is_active = %s,
            description = %s,
            updated_at = now()
        WHERE property_id = %s AND id = %s
        """,
        (
            data["name"],
            data["start_date"],
            data["end_date"],
            data["rate_type"],
            data["rate_value"],
            data.get("priority", 0),
            data.get("min_stay_nights"),
            data.get("applies_to_weekends_only", False),
            data.get("is_active", True),
            data.get("description"),
            property_id,
            rate_id,
        ),
    )


def deactivate_rate(cur: PgCursor, *, property_id: str, rate_id: str) -> bool:
    """Soft-delete: mark inactive. Returns False if the rate does not exist."""
    cur.execute(
        """
        UPDATE property_seasonal_rates
        SET is_active = false, updated_at = now()
        WHERE property_id = %s AND id = %s
        """,
        (property_id, rate_id),
    )
    return cur.rowcount > 0
