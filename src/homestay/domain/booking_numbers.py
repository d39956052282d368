"""Booking number generation.

Numbers come from a database sequence drawn inside the admission
transaction, so two concurrent admissions can never share one.
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

BOOKING_NUMBER_PREFIX = "BK"


def format_booking_number(day: date, seq: int) -> str:
    """BK + YYYYMMDD + zero-padded sequence, e.g. BK20241225000042."""
    return f"{BOOKING_NUMBER_PREFIX}{day:%Y%m%d}{seq:06d}"


def next_booking_number(cur: PgCursor, today: date) -> str:
    cur.execute("SELECT nextval('booking_number_seq')")
    return format_booking_number(today, cur.fetchone()[0])
