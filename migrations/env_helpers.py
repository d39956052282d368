"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without alembic.context.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url


def _libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN into a SQLAlchemy psycopg2 URL.

    A host starting with "/" is a unix socket directory and is passed as a
    query parameter.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD") or None
    host = params.get("host", "localhost")

    if host.startswith("/"):
        url = URL.create(
            "postgresql+psycopg2",
            username=params.get("user"),
            password=password,
            database=params.get("dbname"),
            query={"host": host},
        )
    else:
        url = URL.create(
            "postgresql+psycopg2",
            username=params.get("user"),
            password=password,
            host=host,
            port=int(params.get("port", 5432)),
            database=params.get("dbname"),
        )
    return url.render_as_string(hide_password=False)


def get_database_url() -> str:
    """DATABASE_URL normalized for SQLAlchemy, with DB_PASSWORD fallback."""
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in raw:
        return _libpq_dsn_to_url(raw)

    url = make_url(raw.replace("postgres://", "postgresql://", 1))
    if url.drivername == "postgresql":
        url = url.set(drivername="postgresql+psycopg2")
    db_password = os.environ.get("DB_PASSWORD")
    if db_password and not url.password:
        url = url.set(password=db_password)
    return url.render_as_string(hide_password=False)
