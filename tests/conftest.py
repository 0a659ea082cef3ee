"""
Pytest configuration for the DLR poller.

Provides fixtures for:
- Kannel configuration samples and routing tables
- Database connection management for integration tests
- Seeding of the dlr table
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import psycopg
import pytest

from dlr_poller.domain.models import ConnectionProfile
from dlr_poller.infrastructure.kannel_conf import RoutingTable, parse_kannel_conf

KANNEL_CONF_SAMPLE = """\
group = core
admin-port = 13000
dlr-storage = pgsql

group = smsc
smsc = http
smsc-id = smsc_ru
host = smsc.ru
port = 80
smsc-username = "acme"
smsc-password = "s3cret word"

group = smsc
smsc-id = backup
smsc-username = backup-login
smsc-password = backup-pass

group = pgsql-connection
id = dlr-db
host = db.internal
username = kannel
password = kannel-pass
database = kannel_dlr
max-connections = 5

group = sendsms-user
username = ignored
password = ignored
"""


@pytest.fixture
def kannel_conf_text() -> str:
    return KANNEL_CONF_SAMPLE


@pytest.fixture
def kannel_conf_path(tmp_path: Path, kannel_conf_text: str) -> Path:
    path = tmp_path / "kannel.conf"
    path.write_text(kannel_conf_text, encoding="utf-8")
    return path


@pytest.fixture
def routing_table() -> RoutingTable:
    return RoutingTable(
        {"smsc_ru": ConnectionProfile(login="acme", password="p@ss word")},
        storage=ConnectionProfile(host="localhost", port="5432", database="dlr"),
    )


@pytest.fixture(scope="session")
def sample_routing_table() -> RoutingTable:
    return parse_kannel_conf(KANNEL_CONF_SAMPLE.splitlines())


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', 'postgres')}"
        f"@{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}"
        f"/{os.getenv('DB_NAME', 'dlr')}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def dlr_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the dlr table exists.
    """
    from scripts.seed_dlr import DLR_DDL

    db_connection.execute(DLR_DDL)
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_dlr_table(db_connection: psycopg.Connection, dlr_schema_initialized: bool):
    """
    Empty the dlr table before and after each test function.
    """
    db_connection.execute("TRUNCATE TABLE dlr RESTART IDENTITY;")
    db_connection.commit()
    yield
    db_connection.execute("TRUNCATE TABLE dlr RESTART IDENTITY;")
    db_connection.commit()


@pytest.fixture(scope="function")
def seeded_dlr_small(
    db_connection: psycopg.Connection,
    clean_dlr_table,
    test_dsn: str,
    tmp_path: Path,
) -> int:
    """
    Seed 25 pending rows routed through `smsc_ru`.

    Returns the number of rows seeded.
    """
    from scripts.seed_dlr import _copy_into_db, _generate_rows_csv

    csv_path = tmp_path / "dlr.csv"
    _generate_rows_csv(
        csv_path, rows=25, seed=42, smsc_ids=["smsc_ru"], callback_base="http://client.test/dlr"
    )
    _copy_into_db(test_dsn, csv_path)

    with db_connection.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM dlr WHERE status = '0';")
        count = cur.fetchone()[0]
    return count
