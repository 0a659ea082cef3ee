"""
PostgreSQL record source and status sink over the Kannel `dlr` table.

`fetch_pending` streams unresolved rows through a server-side cursor so the
dispatcher can start handing records to workers before the whole batch has
been read. `set_status` is a single-row update that commits on its own pooled
connection; failures are logged and swallowed so that one record never aborts
a cycle.
"""

from __future__ import annotations

from typing import Iterator

import psycopg
from psycopg_pool import ConnectionPool

from dlr_poller.domain.models import PendingRecord
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

SQL_PENDING = (
    "SELECT id, ts, smsc, url, destination FROM dlr "
    "WHERE status = '0' ORDER BY id DESC LIMIT %s"
)
SQL_UPDATE = "UPDATE dlr SET status = %s WHERE id = %s"

DEFAULT_FETCH_SIZE = 100


class PostgresRecordStore:
    """
    Record source/sink backed by a psycopg ConnectionPool.

    The pool is shared by the fetch cursor and every worker, so it must allow
    at least `workers + 1` connections.
    """

    def __init__(self, pool: ConnectionPool, fetch_size: int = DEFAULT_FETCH_SIZE) -> None:
        self._pool = pool
        self.fetch_size = fetch_size

    def fetch_pending(self, limit: int) -> Iterator[PendingRecord]:
        """
        Yield up to `limit` unresolved records, newest first.

        Database errors propagate: a failing fetch is fatal for the poller.
        """
        with self._pool.connection() as conn:
            with conn.cursor(name="dlr_pending") as cur:
                cur.execute(SQL_PENDING, (limit,))
                while True:
                    batch = cur.fetchmany(self.fetch_size)
                    if not batch:
                        break
                    for row in batch:
                        try:
                            record = PendingRecord.from_row(row)
                        except (TypeError, ValueError) as exc:
                            log.warning(f"Skipping malformed dlr row {row[0]!r}: {exc}")
                            continue
                        yield record

    def set_status(self, record_id: int, status: str) -> bool:
        """Mark a record with the given status. Returns False if the update failed."""
        try:
            with self._pool.connection() as conn:
                conn.execute(SQL_UPDATE, (status, record_id))
        except psycopg.Error as exc:
            log.error(
                f"Record {record_id} status update failed: {exc}",
                extra={"record_id": record_id, "status": status},
            )
            return False
        return True

    def close(self) -> None:
        self._pool.close()


__all__ = ["PostgresRecordStore", "SQL_PENDING", "SQL_UPDATE"]
