"""Booking workflow repository - audit rows for reservation status changes.

Only the reservation state machine (domain.booking_status) calls this.
"""

from psycopg2.extensions import cursor as PgCursor


def insert_workflow_entry(
    cur: PgCursor,
    *,
    reservation_id: str,
    step: str,
    from_status: str | None,
    to_status: str,
    processed_by: str | None,
    notes: str | None = None,
) -> int:
    """Append one workflow/audit row. Returns the row id."""
    cur.execute(
        """
        INSERT INTO booking_workflow (
            reservation_id, step, from_status, to_status,
            processed_by, notes, processed_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, now())
        RETURNING id
        """,
        (reservation_id, step, from_status, to_status, processed_by, notes),
    )
    return cur.fetchone()[0]


def list_workflow(cur: PgCursor, reservation_id: str) -> list[dict]:
    """Workflow rows for a reservation, oldest first."""
    cur.execute(
        """
        SELECT step, from_status, to_status, processed_by, notes, processed_at
        FROM booking_workflow
        WHERE reservation_id = %s
        ORDER BY processed_at, id
        """,
        (reservation_id,),
    )
    return [
        {
            "step": r[0],
            "from_status": r[1],
            "to_status": r[2],
            "processed_by": r[3],
            "notes": r[4],
            "processed_at": r[5].isoformat() if r[5] else None,
        }
        for r in cur.fetchall()
    ]
