"""
Infrastructure package for the DLR poller.

Centralizes I/O concerns: Kannel configuration loading, the PostgreSQL pool
and record store, and the HTTP clients. Keep this layer free of the
decision logic that lives in `dlr_poller.processing`.
"""

from dlr_poller.infrastructure.db_factory import build_dsn, open_pool
from dlr_poller.infrastructure.http_clients import (
    CallbackClient,
    SmscStatusClient,
    build_http_client,
    format_callback_url,
)
from dlr_poller.infrastructure.kannel_conf import (
    RoutingTable,
    load_routing_table,
    parse_kannel_conf,
)
from dlr_poller.infrastructure.record_store import PostgresRecordStore

__all__ = [
    "CallbackClient",
    "PostgresRecordStore",
    "RoutingTable",
    "SmscStatusClient",
    "build_dsn",
    "build_http_client",
    "format_callback_url",
    "load_routing_table",
    "open_pool",
    "parse_kannel_conf",
]
