"""
Seed script for the DLR poller.

Creates the Kannel `dlr` table (with the `id` column the poller orders by) and
loads deterministic pseudo-random pending rows through CSV + Postgres COPY.
Useful for local runs against a mock SMSC and for integration tests.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from pathlib import Path

import psycopg
import typer

from dlr_poller.infrastructure.db_factory import build_dsn
from dlr_poller.infrastructure.kannel_conf import load_routing_table

app = typer.Typer(help="Create the dlr table and load synthetic pending records.")

DLR_DDL = """
CREATE TABLE IF NOT EXISTS dlr (
    id BIGSERIAL PRIMARY KEY,
    smsc VARCHAR(40),
    ts VARCHAR(65),
    destination VARCHAR(40),
    source VARCHAR(40),
    service VARCHAR(40),
    url VARCHAR(255),
    mask INTEGER,
    status VARCHAR(10) NOT NULL DEFAULT '0',
    boxc VARCHAR(40)
);
CREATE INDEX IF NOT EXISTS dlr_status_id_idx ON dlr (status, id DESC);
"""

CSV_COLUMNS = ["smsc", "ts", "destination", "source", "service", "url", "mask", "status"]


def _generate_rows_csv(
    csv_path: Path,
    rows: int,
    seed: int,
    smsc_ids: list[str],
    callback_base: str,
) -> None:
    rng = random.Random(seed)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        for i in range(rows):
            external_id = rng.randint(1, 2_000_000_000)
            writer.writerow(
                [
                    rng.choice(smsc_ids),
                    str(external_id),
                    f"7{rng.randint(900_000_0000, 999_999_9999)}",
                    "INFO",
                    "default",
                    f"{callback_base}?msg={i}&status=%d",
                    31,
                    "0",
                ]
            )


def _ensure_schema(dsn: str) -> None:
    with psycopg.connect(dsn) as conn:
        conn.execute(DLR_DDL)
        conn.commit()


def _copy_into_db(dsn: str, csv_path: Path) -> None:
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            with cur.copy(
                f"COPY dlr ({', '.join(CSV_COLUMNS)}) FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            conn.commit()


@app.command()
def main(
    conf: Path = typer.Option(
        Path("/etc/kannel/kannel.conf"),
        "--conf",
        help="Kannel configuration providing the pgsql-connection group and smsc ids.",
    ),
    rows: int = typer.Option(1_000, "--rows", "-r", help="Number of pending rows to generate."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    callback_base: str = typer.Option(
        "http://localhost:8080/dlr", "--callback-base", help="Base URL for generated callbacks."
    ),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Create the dlr table if needed and load synthetic pending records.
    """
    routing = load_routing_table(conf)
    conn_dsn = dsn or build_dsn(routing.storage)
    smsc_ids = routing.gateway_keys or ["smsc_ru"]

    start = time.perf_counter()
    _ensure_schema(conn_dsn)
    with tempfile.TemporaryDirectory(prefix="dlr_seed_") as tmpdir:
        csv_path = Path(tmpdir) / "dlr.csv"
        _generate_rows_csv(csv_path, rows, seed, smsc_ids, callback_base)
        _copy_into_db(conn_dsn, csv_path)

    typer.echo(
        f"Loaded {rows:,} pending rows for smsc {', '.join(smsc_ids)} "
        f"in {time.perf_counter() - start:.2f}s"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
