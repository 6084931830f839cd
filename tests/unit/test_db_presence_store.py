from datetime import datetime, timedelta, timezone

import psycopg
import pytest

from presence_platform.errors import StoreUnavailable
from presence_platform.storage.base import PresenceRecord
from presence_platform.storage.db_storage import DBPresenceStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class DummyCursor:
    def __init__(self, results=None, rowcount=1, fail=None):
        # results is a list of dicts or tuples
        self._results = results or []
        self.rowcount = rowcount
        self._index = 0
        self._fail = fail
        self.executed = []

    def execute(self, query, params=None):
        if self._fail is not None:
            raise self._fail
        self.executed.append((" ".join(query.split()), params))
        return self

    def fetchone(self):
        if self._index < len(self._results):
            row = self._results[self._index]
            self._index += 1
            return row
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class DummyConnection:
    def __init__(self, results=None, rowcount=1, fail=None):
        self.autocommit = False
        self.closed = False
        self.last_cursor = DummyCursor(results=results, rowcount=rowcount, fail=fail)

    def cursor(self, row_factory=None):
        return self.last_cursor

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _patch(monkeypatch, conn):
    monkeypatch.setattr("psycopg.connect", lambda dsn, **kwargs: conn)


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------

def test_upsert_uses_on_conflict_and_caller_timestamp(monkeypatch):
    conn = DummyConnection()
    _patch(monkeypatch, conn)
    DBPresenceStore("fake").upsert("v1", T0, page=None, user_agent="ua")

    sql, params = conn.last_cursor.executed[0]
    assert "ON CONFLICT (visitor_id) DO UPDATE" in sql
    assert params == ("v1", "/", "ua", T0, T0)
    assert conn.autocommit is True
    assert conn.closed is True


def test_delete_older_than_returns_rowcount(monkeypatch):
    conn = DummyConnection(rowcount=3)
    _patch(monkeypatch, conn)
    assert DBPresenceStore("fake").delete_older_than(T0) == 3
    sql, params = conn.last_cursor.executed[0]
    assert "last_seen <= %s" in sql
    assert params == (T0,)


def test_count_with_cutoff(monkeypatch):
    conn = DummyConnection(results=[(7,)])
    _patch(monkeypatch, conn)
    assert DBPresenceStore("fake").count(newer_than=T0) == 7
    sql, params = conn.last_cursor.executed[0]
    assert "last_seen > %s" in sql
    assert params == (T0,)


def test_count_without_cutoff(monkeypatch):
    conn = DummyConnection(results=[(0,)])
    _patch(monkeypatch, conn)
    assert DBPresenceStore("fake").count() == 0


def test_remove(monkeypatch):
    _patch(monkeypatch, DummyConnection(rowcount=1))
    assert DBPresenceStore("fake").remove("v1") is True
    _patch(monkeypatch, DummyConnection(rowcount=0))
    assert DBPresenceStore("fake").remove("v1") is False


def test_get_found_and_missing(monkeypatch):
    row = {"visitor_id": "v1", "last_seen": T0, "page": "/store", "user_agent": None}
    _patch(monkeypatch, DummyConnection(results=[row]))
    assert DBPresenceStore("fake").get("v1") == PresenceRecord("v1", T0, "/store", None)

    _patch(monkeypatch, DummyConnection(results=[]))
    assert DBPresenceStore("fake").get("v1") is None


def test_connect_failure_raises_store_unavailable(monkeypatch):
    def _refuse(dsn, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr("psycopg.connect", _refuse)
    with pytest.raises(StoreUnavailable) as exc_info:
        DBPresenceStore("fake").count()
    assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)


def test_operation_failure_raises_store_unavailable_and_closes(monkeypatch):
    conn = DummyConnection(fail=psycopg.OperationalError("statement timeout"))
    _patch(monkeypatch, conn)
    with pytest.raises(StoreUnavailable):
        DBPresenceStore("fake").delete_older_than(T0 - timedelta(minutes=5))
    assert conn.closed is True


def test_connect_timeout_is_passed(monkeypatch):
    seen = {}

    def _connect(dsn, **kwargs):
        seen.update(kwargs, dsn=dsn)
        return DummyConnection(results=[(0,)])

    monkeypatch.setattr("psycopg.connect", _connect)
    DBPresenceStore("postgresql://x", connect_timeout=2).count()
    assert seen == {"dsn": "postgresql://x", "connect_timeout": 2}
