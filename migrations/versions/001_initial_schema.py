"""Booking core schema (SQL-only).

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _read_sql() -> str:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "001_initial.sql"
    return sql_path.read_text(encoding="utf-8")


def upgrade() -> None:
    # exec_driver_sql keeps the DO $$ ... $$ block intact
    op.get_bind().exec_driver_sql(_read_sql())


def downgrade() -> None:
    op.execute(
        """
        DROP TABLE IF EXISTS outbox_events;
        DROP TABLE IF EXISTS property_seasonal_rates;
        DROP TABLE IF EXISTS booking_workflow;
        DROP TABLE IF EXISTS booking_guests;
        DROP TABLE IF EXISTS reservations;
        DROP SEQUENCE IF EXISTS booking_number_seq;
        DROP TABLE IF EXISTS properties;
        DROP TYPE IF EXISTS reservation_status;
        """
    )
