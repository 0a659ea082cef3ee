"""
Database connection factory for the DLR poller.

Builds the PostgreSQL DSN from the Kannel `pgsql-connection` profile and opens
the shared connection pool used by the record store. Opening the pool is
retried with tenacity for transient connection failures; a pool that still
cannot connect is reported as StorageUnavailableError.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool, PoolTimeout
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dlr_poller.domain.models import ConnectionProfile
from dlr_poller.errors import StorageUnavailableError
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

POOL_OPEN_TIMEOUT_SECONDS = 10.0


def build_dsn(profile: ConnectionProfile) -> str:
    """Compose a libpq connection string from a storage profile."""
    params = {
        "host": profile.host or "localhost",
        "port": profile.port or "5432",
        "dbname": profile.database or "dlr",
        "sslmode": "disable",
    }
    if profile.login:
        params["user"] = profile.login
    if profile.password:
        params["password"] = profile.password
    return make_conninfo(**params)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, PoolTimeout)),
    reraise=False,
)
def _open_pool(dsn: str, min_size: int, max_size: int, timeout: float) -> ConnectionPool:
    pool = ConnectionPool(conninfo=dsn, min_size=min_size, max_size=max_size, open=False)
    try:
        pool.open(wait=True, timeout=timeout)
    except Exception:
        pool.close()
        raise
    return pool


def open_pool(
    profile: ConnectionProfile,
    max_size: int,
    min_size: int = 1,
    timeout: float = POOL_OPEN_TIMEOUT_SECONDS,
    dsn_override: Optional[str] = None,
) -> ConnectionPool:
    """
    Open the storage connection pool, retrying transient failures.

    Parameters
    ----------
    profile : ConnectionProfile
        Storage coordinates from the Kannel configuration.
    max_size : int
        Maximum total connections; size it for every worker plus the fetch cursor.
    min_size : int
        Minimum number of idle connections to keep.
    timeout : float
        Seconds to wait for the first connections on each attempt.
    dsn_override : str | None
        Connection string to use instead of the profile (tests).

    Raises
    ------
    StorageUnavailableError
        If the pool cannot connect after all retry attempts.
    """
    dsn = dsn_override or build_dsn(profile)
    try:
        pool = _open_pool(dsn, min_size, max_size, timeout)
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        raise StorageUnavailableError(f"Cannot connect to DLR storage: {cause}") from cause

    log.info(
        "Storage pool opened",
        extra={"host": profile.host, "database": profile.database, "max_size": max_size},
    )
    return pool


__all__ = ["build_dsn", "open_pool"]
