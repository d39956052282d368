"""Properties repository - read access to the externally owned property row.

Uses raw SQL with psycopg2 (no ORM). The booking core never writes
properties; it only reads pricing/capacity fields, optionally under an
exclusive row lock during admission.
"""

from __future__ import annotations

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from homestay.infra.db import for_update

_PROPERTY_COLUMNS = (
    "id",
    "base_rate",
    "weekend_premium_percent",
    "cleaning_fee",
    "extra_bed_rate",
    "capacity",
    "capacity_max",
    "min_stay_weekday",
    "min_stay_weekend",
    "min_stay_peak",
)

_SELECT_PROPERTY = f"""
    SELECT {", ".join(_PROPERTY_COLUMNS)}
    FROM properties
    WHERE id = %s
"""


def _row_to_dict(row: tuple[Any, ...]) -> dict[str, Any]:
    data = dict(zip(_PROPERTY_COLUMNS, row))
    data["id"] = str(data["id"])
    return data


def get_property(cur: PgCursor, property_id: str) -> dict[str, Any] | None:
    """Read a property's pricing and stay configuration (no lock)."""
    cur.execute(_SELECT_PROPERTY, (property_id,))
    row = cur.fetchone()
    return _row_to_dict(row) if row is not None else None


def lock_property(cur: PgCursor, property_id: str) -> dict[str, Any] | None:
    """Read the property row with SELECT ... FOR UPDATE.

    Serializes every writer that locks the same property (booking admission,
    seasonal-rate writes) until the surrounding transaction ends. Other
    properties are unaffected.
    """
    row = for_update(cur, _SELECT_PROPERTY, (property_id,))
    return _row_to_dict(row) if row is not None else None
