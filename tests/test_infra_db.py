"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest
from psycopg2 import errors as pg_errors
from psycopg2.extensions import TransactionRollbackError


class TestGetConnPasswordFallback:
    """DB_PASSWORD fallback in get_conn(), no real DB needed."""

    def test_fallback_for_keyword_dsn_without_password(self):
        from homestay.infra.db import get_conn

        env = {"DATABASE_URL": "dbname=db user=u host=h port=5432", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("homestay.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db user=u host=h port=5432",
                password="from-env",
            )

    def test_keyword_dsn_password_wins(self):
        from homestay.infra.db import get_conn

        env = {"DATABASE_URL": "dbname=db user=u password=from-dsn host=h", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("homestay.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("dbname=db user=u password=from-dsn host=h")

    def test_fallback_for_url_without_password(self):
        from homestay.infra.db import get_conn

        env = {"DATABASE_URL": "postgres://u@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("homestay.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u@h/db", password="from-env")

    def test_url_password_wins(self):
        from homestay.infra.db import get_conn

        env = {"DATABASE_URL": "postgres://u:p@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("homestay.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db")

    def test_raises_without_database_url(self):
        from homestay.infra.db import get_conn

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxnWithMockConnection:
    def _conn(self):
        conn = MagicMock()
        cur = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cur
        return conn, cur

    def test_commits_on_success(self):
        from homestay.infra.db import txn

        conn, cur = self._conn()
        with txn(conn) as got:
            assert got is cur
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rolls_back_and_reraises(self):
        from homestay.infra.db import txn

        conn, _ = self._conn()
        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("boom")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_failed_commit_propagates(self):
        from homestay.infra.db import txn

        conn, _ = self._conn()
        conn.commit.side_effect = TransactionRollbackError("deadlock detected")
        with pytest.raises(TransactionRollbackError):
            with txn(conn):
                pass
        conn.rollback.assert_called_once()

    def test_owned_connection_is_closed(self):
        from homestay.infra.db import txn

        conn, _ = self._conn()
        with patch("homestay.infra.db.get_conn", return_value=conn):
            with txn():
                pass
        conn.close.assert_called_once()


class TestLockingHelpers:
    def test_for_update_appends_suffix(self):
        from homestay.infra.db import for_update

        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        row = for_update(cur, "SELECT id FROM properties WHERE id = %s;", ("p",))
        assert row == (1,)
        cur.execute.assert_called_once_with(
            "SELECT id FROM properties WHERE id = %s FOR UPDATE", ("p",)
        )

    def test_for_update_nowait(self):
        from homestay.infra.db import for_update

        cur = MagicMock()
        for_update(cur, "SELECT 1", nowait=True)
        assert cur.execute.call_args[0][0] == "SELECT 1 FOR UPDATE NOWAIT"

    def test_for_update_skip_locked(self):
        from homestay.infra.db import for_update

        cur = MagicMock()
        for_update(cur, "SELECT 1", skip_locked=True)
        assert cur.execute.call_args[0][0] == "SELECT 1 FOR UPDATE SKIP LOCKED"

    def test_for_update_rejects_both_modes(self):
        from homestay.infra.db import for_update

        with pytest.raises(ValueError, match="Cannot use both"):
            for_update(MagicMock(), "SELECT 1", nowait=True, skip_locked=True)

    def test_set_lock_timeout(self):
        from homestay.infra.db import set_lock_timeout

        cur = MagicMock()
        set_lock_timeout(cur, 2500)
        cur.execute.assert_called_once_with("SET LOCAL lock_timeout = 2500")


class TestErrorClassification:
    @pytest.mark.parametrize(
        "exc",
        [
            TransactionRollbackError("deadlock detected"),
            pg_errors.DeadlockDetected("deadlock detected"),
            pg_errors.SerializationFailure("could not serialize access"),
            pg_errors.LockNotAvailable("canceling statement due to lock timeout"),
            pg_errors.QueryCanceled("canceling statement due to statement timeout"),
        ],
    )
    def test_retryable(self, exc):
        from homestay.infra.db import is_exclusion_violation, is_retryable

        assert is_retryable(exc)
        assert not is_exclusion_violation(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            pg_errors.UniqueViolation("duplicate key"),
            pg_errors.CheckViolation("check constraint"),
            ValueError("not a db error"),
        ],
    )
    def test_not_retryable(self, exc):
        from homestay.infra.db import is_retryable

        assert not is_retryable(exc)

    def test_exclusion_violation(self):
        from homestay.infra.db import is_exclusion_violation, is_retryable

        exc = pg_errors.ExclusionViolation("conflicting key value")
        assert is_exclusion_violation(exc)
        assert not is_retryable(exc)


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestTxnIntegration:
    def test_commits_on_success(self):
        from homestay.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
            conn.commit()

            with txn(conn) as cur:
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("test",))

            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                assert cur.fetchone()[0] == "test"
        finally:
            conn.close()

    def test_rollback_on_exception(self):
        from homestay.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_rollback (id serial, val text)")
            conn.commit()

            with pytest.raises(ValueError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO test_rollback (val) VALUES (%s)", ("bad",))
                    raise ValueError("rollback test")

            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM test_rollback")
                assert cur.fetchone()[0] == 0
        finally:
            conn.close()

    def test_fetch_helpers(self):
        from homestay.infra.db import fetchall, fetchone, txn

        with txn() as cur:
            assert fetchone(cur, "SELECT %s::int", (42,))[0] == 42
            rows = fetchall(cur, "SELECT generate_series(1, 3)")
            assert [r[0] for r in rows] == [1, 2, 3]

    def test_lock_timeout_is_transaction_local(self):
        from homestay.infra.db import get_conn, set_lock_timeout, txn

        conn = get_conn()
        try:
            with txn(conn) as cur:
                set_lock_timeout(cur, 1234)
                cur.execute("SHOW lock_timeout")
                assert cur.fetchone()[0] == "1234ms"
            with txn(conn) as cur:
                cur.execute("SHOW lock_timeout")
                assert cur.fetchone()[0] != "1234ms"
        finally:
            conn.close()
