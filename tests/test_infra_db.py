"""Tests for database layer."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from psycopg2 import errors as pg_errors

from hotelbook.infra.db import for_update, get_conn, txn


class TestGetConnPasswordFallback:
    """Tests for DB_PASSWORD fallback in get_conn() (no real DB needed)."""

    def test_db_password_fallback_dsn_without_password(self):
        env = {"DATABASE_URL": "dbname=db user=u host=h port=5432", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hotelbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db user=u host=h port=5432",
                password="from-env",
                connect_timeout=10,
            )

    def test_db_password_not_used_when_dsn_has_password(self):
        env = {"DATABASE_URL": "dbname=db user=u password=from-dsn host=h", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hotelbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db user=u password=from-dsn host=h",
                connect_timeout=10,
            )

    def test_db_password_fallback_url_without_password(self):
        env = {"DATABASE_URL": "postgres://u@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hotelbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "postgres://u@h/db",
                password="from-env",
                connect_timeout=10,
            )

    def test_db_password_not_used_when_url_has_password(self):
        env = {"DATABASE_URL": "postgres://u:p@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hotelbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db", connect_timeout=10)

    def test_connect_timeout_from_env(self):
        env = {"DATABASE_URL": "dbname=db user=u host=h", "DB_CONNECT_TIMEOUT": "3"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hotelbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("dbname=db user=u host=h", connect_timeout=3)

    def test_raises_without_database_url(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxn:
    """txn() against a mocked connection."""

    @pytest.fixture
    def conn(self):
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = MagicMock(name="cursor")
        return conn

    def test_commits_on_success(self, conn):
        with txn(conn) as cur:
            cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rollback_on_exception(self, conn):
        with pytest.raises(ValueError, match="rollback test"):
            with txn(conn):
                raise ValueError("rollback test")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_opens_and_closes_own_connection(self, conn):
        with patch("hotelbook.infra.db.get_conn", return_value=conn):
            with txn():
                pass

        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_closes_own_connection_after_rollback(self, conn):
        with patch("hotelbook.infra.db.get_conn", return_value=conn):
            with pytest.raises(RuntimeError):
                with txn():
                    raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        conn.close.assert_called_once()


class TestForUpdate:
    def test_appends_lock_clause(self):
        cur = MagicMock()
        cur.fetchone.return_value = ("room-1",)

        row = for_update(cur, "SELECT id FROM rooms WHERE id = %s;", ("room-1",))

        assert row == ("room-1",)
        cur.execute.assert_called_once_with(
            "SELECT id FROM rooms WHERE id = %s FOR UPDATE", ("room-1",)
        )

    def test_nowait(self):
        cur = MagicMock()
        for_update(cur, "SELECT 1", nowait=True)
        assert cur.execute.call_args.args[0] == "SELECT 1 FOR UPDATE NOWAIT"

    def test_lock_only_aliased_table(self):
        cur = MagicMock()
        for_update(cur, "SELECT r.id FROM rooms r JOIN hotels h ON h.id = r.hotel_id", of="r")
        assert cur.execute.call_args.args[0].endswith(" FOR UPDATE OF r")

    def test_of_with_nowait(self):
        cur = MagicMock()
        for_update(cur, "SELECT 1", of="r", nowait=True)
        assert cur.execute.call_args.args[0] == "SELECT 1 FOR UPDATE OF r NOWAIT"


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestRealDatabase:
    def test_round_trip(self):
        with txn() as cur:
            cur.execute("SELECT %s::int", (42,))
            assert cur.fetchone()[0] == 42


MIGRATIONS_SQL = Path(__file__).resolve().parents[1] / "migrations" / "sql"
NO_OVERLAP_SQL = MIGRATIONS_SQL / "002_no_room_overlap_constraint.sql"


@_skip_no_db
class TestNoRoomOverlapConstraint:
    """Runs the constraint migration against a temp table that shadows reservations."""

    ROOM = "9b2e4d6f-1a3c-4e5b-8d7f-0a1b2c3d4e5f"
    OTHER_ROOM = "9b2e4d6f-1a3c-4e5b-8d7f-0a1b2c3d4e60"

    @pytest.fixture
    def cur(self):
        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TEMP TABLE reservations (
                        room_id   uuid NOT NULL,
                        check_in  timestamptz NOT NULL,
                        check_out timestamptz NOT NULL,
                        status    text NOT NULL DEFAULT 'PENDING'
                    )
                    """
                )
                cur.execute(NO_OVERLAP_SQL.read_text())
                yield cur
        finally:
            conn.rollback()
            conn.close()

    def _insert(self, cur, check_in, check_out, *, room=None, status="PENDING"):
        cur.execute(
            "INSERT INTO reservations (room_id, check_in, check_out, status)"
            " VALUES (%s, %s, %s, %s)",
            (room or self.ROOM, check_in, check_out, status),
        )

    def _rejected(self, cur, check_in, check_out, **kwargs) -> bool:
        cur.execute("SAVEPOINT attempt")
        try:
            self._insert(cur, check_in, check_out, **kwargs)
        except pg_errors.ExclusionViolation:
            cur.execute("ROLLBACK TO SAVEPOINT attempt")
            return True
        cur.execute("RELEASE SAVEPOINT attempt")
        return False

    def test_constraint_lands_on_shadow_table(self, cur):
        cur.execute(
            "SELECT 1 FROM pg_constraint WHERE conname = 'no_room_overlap'"
            " AND conrelid = 'pg_temp.reservations'::regclass"
        )
        assert cur.fetchone() is not None

    def test_overlap_rejected(self, cur):
        self._insert(cur, "2026-01-10T14:00Z", "2026-01-13T11:00Z")

        assert self._rejected(cur, "2026-01-12T14:00Z", "2026-01-15T11:00Z")
        assert self._rejected(cur, "2026-01-11T00:00Z", "2026-01-12T00:00Z")

    def test_touching_boundary_allowed(self, cur):
        self._insert(cur, "2026-01-10T14:00Z", "2026-01-13T11:00Z")

        assert not self._rejected(cur, "2026-01-13T11:00Z", "2026-01-15T11:00Z")
        assert not self._rejected(cur, "2026-01-08T11:00Z", "2026-01-10T14:00Z")

    def test_cancelled_rows_do_not_block(self, cur):
        self._insert(cur, "2026-01-10T14:00Z", "2026-01-13T11:00Z", status="CANCELLED")

        assert not self._rejected(cur, "2026-01-11T14:00Z", "2026-01-12T11:00Z")

    def test_other_rooms_do_not_block(self, cur):
        self._insert(cur, "2026-01-10T14:00Z", "2026-01-13T11:00Z")

        assert not self._rejected(
            cur, "2026-01-10T14:00Z", "2026-01-13T11:00Z", room=self.OTHER_ROOM
        )
