from __future__ import annotations

import signal
import sys
from typing import Optional

import httpx
import psycopg
import typer

from dlr_poller.config import Settings, get_settings
from dlr_poller.errors import DlrPollerError, StorageUnavailableError
from dlr_poller.infrastructure.db_factory import open_pool
from dlr_poller.infrastructure.http_clients import (
    CallbackClient,
    SmscStatusClient,
    build_http_client,
)
from dlr_poller.infrastructure.kannel_conf import load_routing_table
from dlr_poller.infrastructure.record_store import PostgresRecordStore
from dlr_poller.orchestrator import CycleLoop, CycleReport, LoopConfig
from dlr_poller.processing.abstract import RecordStore
from dlr_poller.processing.backoff import BackoffState
from dlr_poller.processing.processor import RecordProcessor
from dlr_poller.reporter import print_cycle_report
from dlr_poller.utils.logging import configure_logging, get_logger

log = get_logger(__name__)

app = typer.Typer(help="Reconcile pending Kannel DLR records against the SMSC status API.")


def _install_signal_handlers(loop: CycleLoop) -> None:
    def handle_signal(signum: int, _frame: object) -> None:
        log.info(f"Got signal {signal.Signals(signum).name}, shutting down")
        loop.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def build_loop(
    settings: Settings, once: bool = False
) -> tuple[CycleLoop, RecordStore, httpx.Client]:
    """
    Wire configuration, storage, HTTP clients and the engine together.

    Returns the loop plus the resources the caller must close.
    """
    routing = load_routing_table(settings.kannel_conf)
    pool = open_pool(routing.storage, max_size=settings.workers + 1)
    store: RecordStore = PostgresRecordStore(pool)
    http = build_http_client(settings.http_timeout)

    backoff = BackoffState()
    processor = RecordProcessor(
        routing=routing,
        status_client=SmscStatusClient(http, settings.status_url),
        callback_client=CallbackClient(http),
        sink=store,
        backoff=backoff,
    )
    loop = CycleLoop(
        source=store,
        handler=processor,
        backoff=backoff,
        config=LoopConfig(
            workers=settings.workers,
            limit=settings.limit,
            pause=settings.pause,
            blocked_pause=settings.blocked_pause,
            shutdown_grace=settings.shutdown_grace,
            once=once,
        ),
    )
    return loop, store, http


def serve(
    settings: Settings, once: bool = False, install_signal_handlers: bool = True
) -> Optional[CycleReport]:
    """
    Run the poller until a shutdown signal (or a single cycle with `once`).

    Returns the report of the last cycle that ran.

    Raises
    ------
    DlrPollerError
        On fatal startup failures or if the pending-records query fails.
    """
    loop, store, http = build_loop(settings, once=once)
    if install_signal_handlers:
        _install_signal_handlers(loop)

    log.info(
        "DLR poller started",
        extra={
            "workers": settings.workers,
            "limit": settings.limit,
            "pause": settings.pause,
            "blocked_pause": settings.blocked_pause,
        },
    )
    try:
        report = loop.run()
    except psycopg.Error as exc:
        raise StorageUnavailableError(f"Pending records query failed: {exc}") from exc
    finally:
        http.close()
        store.close()
    log.info("DLR poller stopped")
    return report


@app.command()
def run(
    conf: Optional[str] = typer.Option(
        None,
        "--conf",
        help="Location of the Kannel configuration (default /etc/kannel/kannel.conf).",
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", min=1, help="Worker pool size (default 10)."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", min=1, help="Maximum records fetched per cycle (default 1000)."
    ),
    pause: Optional[int] = typer.Option(
        None, "--pause", min=0, help="Seconds between cycles (default 60)."
    ),
    blocked_pause: Optional[int] = typer.Option(
        None,
        "--blocked-pause",
        min=0,
        help="Seconds between cycles after the SMSC signalled throttling (default 600).",
    ),
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--plain-logs", help="Emit logs as JSON."
    ),
    syslog: Optional[bool] = typer.Option(
        None, "--syslog/--no-syslog", help="Also log to the local syslog daemon."
    ),
) -> None:
    """
    Poll pending DLR records, report final statuses to their callbacks, repeat.
    """
    overrides = {
        "kannel_conf": conf,
        "workers": workers,
        "limit": limit,
        "pause": pause,
        "blocked_pause": blocked_pause,
        "log_level": log_level,
        "log_json": json_logs,
        "log_syslog": syslog,
    }
    settings = get_settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    configure_logging(
        level=settings.log_level.upper(),
        json_logs=settings.log_json,
        syslog=settings.log_syslog,
    )

    try:
        report = serve(settings, once=once)
    except DlrPollerError as exc:
        log.error(f"Program is exiting: {exc}")
        raise typer.Exit(code=1)

    if once:
        print_cycle_report(report)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
