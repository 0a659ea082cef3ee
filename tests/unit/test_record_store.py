from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any

import psycopg
import pytest
from psycopg_pool import PoolTimeout
from tenacity import wait_none

from dlr_poller.domain.models import ConnectionProfile, PendingRecord
from dlr_poller.errors import StorageUnavailableError
from dlr_poller.infrastructure import db_factory
from dlr_poller.infrastructure.db_factory import build_dsn, open_pool
from dlr_poller.infrastructure.record_store import SQL_PENDING, SQL_UPDATE, PostgresRecordStore
from dlr_poller.processing.abstract import RecordStore

FETCH_LIMIT = 50
OPEN_ATTEMPTS = 3

ROWS = [
    (12, "9001", "smsc_ru", "http://client.test/dlr?msg=12&status=%d", "79000000012"),
    (11, "9000", "smsc_ru", "http://client.test/dlr?msg=11&status=%d", "79000000011"),
    (10, "not-a-number", "smsc_ru", "http://client.test/dlr?status=%d", "79000000010"),
    (9, "8999", None, None, "79000000009"),
]


class _FakeCursor:
    def __init__(self, rows: list[tuple[Any, ...]], name: str | None) -> None:
        self.name = name
        self._rows = list(rows)
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.fetch_sizes: list[int] = []

    def execute(self, sql: str, params: tuple[Any, ...]) -> None:
        self.executed.append((sql, params))

    def fetchmany(self, size: int) -> list[tuple[Any, ...]]:
        self.fetch_sizes.append(size)
        batch, self._rows = self._rows[:size], self._rows[size:]
        return batch

    def __enter__(self) -> _FakeCursor:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class _FakeConnection:
    def __init__(self, rows: list[tuple[Any, ...]], fail_execute: bool = False) -> None:
        self._rows = rows
        self._fail_execute = fail_execute
        self.cursors: list[_FakeCursor] = []
        self.executed: list[tuple[str, tuple[Any, ...]]] = []

    def cursor(self, name: str | None = None) -> _FakeCursor:
        cursor = _FakeCursor(self._rows, name)
        self.cursors.append(cursor)
        return cursor

    def execute(self, sql: str, params: tuple[Any, ...]) -> None:
        if self._fail_execute:
            raise psycopg.OperationalError("server closed the connection unexpectedly")
        self.executed.append((sql, params))


class _FakeConnectionContext(AbstractContextManager[_FakeConnection]):
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn

    def __enter__(self) -> _FakeConnection:
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb


class _FakePool:
    def __init__(self, conn: _FakeConnection) -> None:
        self.conn = conn
        self.close_calls = 0

    def connection(self) -> _FakeConnectionContext:
        return _FakeConnectionContext(self.conn)

    def close(self) -> None:
        self.close_calls += 1


def test_fetch_pending_streams_rows_through_named_cursor() -> None:
    conn = _FakeConnection(ROWS[:2])
    store = PostgresRecordStore(_FakePool(conn), fetch_size=1)  # type: ignore[arg-type]

    records = list(store.fetch_pending(FETCH_LIMIT))

    assert [record.id for record in records] == [12, 11]
    assert records[0] == PendingRecord(
        id=12,
        external_id=9001,
        gateway_key="smsc_ru",
        callback_url_template="http://client.test/dlr?msg=12&status=%d",
        phone="79000000012",
    )
    cursor = conn.cursors[0]
    assert cursor.name == "dlr_pending"
    assert cursor.executed == [(SQL_PENDING, (FETCH_LIMIT,))]
    assert cursor.fetch_sizes == [1, 1, 1]


def test_fetch_pending_skips_malformed_rows_and_blanks_nulls() -> None:
    conn = _FakeConnection(ROWS)
    store = PostgresRecordStore(_FakePool(conn))  # type: ignore[arg-type]

    records = list(store.fetch_pending(FETCH_LIMIT))

    assert [record.id for record in records] == [12, 11, 9]
    assert records[-1].gateway_key == ""
    assert records[-1].callback_url_template == ""


def test_pending_query_filters_unresolved_and_orders_newest_first() -> None:
    normalized = " ".join(SQL_PENDING.lower().split())

    assert "where status = '0'" in normalized
    assert "order by id desc" in normalized
    assert normalized.endswith("limit %s")


def test_set_status_updates_single_row() -> None:
    conn = _FakeConnection([])
    store = PostgresRecordStore(_FakePool(conn))  # type: ignore[arg-type]

    assert store.set_status(12, "3") is True
    assert conn.executed == [(SQL_UPDATE, ("3", 12))]


def test_set_status_logs_and_swallows_database_errors(caplog) -> None:
    conn = _FakeConnection([], fail_execute=True)
    store = PostgresRecordStore(_FakePool(conn))  # type: ignore[arg-type]

    assert store.set_status(12, "2") is False
    assert "Record 12 status update failed" in caplog.text


def test_close_closes_the_pool() -> None:
    pool = _FakePool(_FakeConnection([]))
    PostgresRecordStore(pool).close()  # type: ignore[arg-type]

    assert pool.close_calls == 1


def test_postgres_store_satisfies_record_store_protocol() -> None:
    store = PostgresRecordStore(_FakePool(_FakeConnection([])))  # type: ignore[arg-type]

    assert isinstance(store, RecordStore)


def test_build_dsn_uses_storage_profile() -> None:
    dsn = build_dsn(
        ConnectionProfile(
            login="kannel", password="pa ss", host="db.internal", port="6432", database="dlr"
        )
    )

    assert "host=db.internal" in dsn
    assert "port=6432" in dsn
    assert "dbname=dlr" in dsn
    assert "user=kannel" in dsn
    assert "password='pa ss'" in dsn


class _UnreachablePool:
    instances: list["_UnreachablePool"] = []

    def __init__(self, conninfo: str, min_size: int, max_size: int, open: bool) -> None:
        self.conninfo = conninfo
        self.max_size = max_size
        self.closed = False
        _UnreachablePool.instances.append(self)

    def open(self, wait: bool, timeout: float) -> None:
        raise PoolTimeout("pool initialization incomplete after 10.0 sec")

    def close(self) -> None:
        self.closed = True


class _ReachablePool(_UnreachablePool):
    def open(self, wait: bool, timeout: float) -> None:
        return None


def test_open_pool_retries_then_reports_storage_unavailable(monkeypatch) -> None:
    _UnreachablePool.instances.clear()
    monkeypatch.setattr(db_factory, "ConnectionPool", _UnreachablePool)
    monkeypatch.setattr(db_factory._open_pool.retry, "wait", wait_none())

    with pytest.raises(StorageUnavailableError, match="Cannot connect"):
        open_pool(ConnectionProfile(host="db.internal"), max_size=11)

    assert len(_UnreachablePool.instances) == OPEN_ATTEMPTS
    assert all(pool.closed for pool in _UnreachablePool.instances)


def test_open_pool_sizes_pool_for_workers(monkeypatch) -> None:
    _UnreachablePool.instances.clear()
    monkeypatch.setattr(db_factory, "ConnectionPool", _ReachablePool)

    pool = open_pool(ConnectionProfile(host="db.internal"), max_size=11)

    assert isinstance(pool, _ReachablePool)
    assert pool.max_size == 11
    assert "host=db.internal" in pool.conninfo
