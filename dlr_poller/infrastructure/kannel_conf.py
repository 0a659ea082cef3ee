"""
Kannel configuration loader.

Builds the read-only routing table (smsc-id -> credentials) and the storage
profile from a Kannel `kannel.conf` file. Only the groups and keys the poller
needs are recognised:

    group = smsc
    smsc-id = smsc_ru
    smsc-username = login
    smsc-password = secret

    group = pgsql-connection
    host = localhost
    username = kannel
    password = kannel
    database = dlr

Any other group closes the current section. An `smsc` group without an
`smsc-id` cannot be routed to and is dropped.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from dlr_poller.domain.models import ConnectionProfile
from dlr_poller.errors import ConfigurationError
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

SMSC_GROUP = "smsc"
STORAGE_GROUP = "pgsql-connection"

STORAGE_DEFAULTS = {"host": "localhost", "port": "5432", "database": "dlr"}

_KEY_FIELDS = {
    "host": "host",
    "port": "port",
    "smsc-username": "login",
    "username": "login",
    "smsc-password": "password",
    "password": "password",
    "database": "database",
}


class RoutingTable:
    """
    Immutable mapping of gateway keys to connection profiles.

    Lookups never mutate the table, so it can be shared by every worker
    thread without locking.
    """

    def __init__(
        self,
        gateways: Mapping[str, ConnectionProfile],
        storage: Optional[ConnectionProfile] = None,
    ) -> None:
        self._gateways = MappingProxyType(dict(gateways))
        self._storage = storage

    def lookup(self, gateway_key: str) -> Optional[ConnectionProfile]:
        return self._gateways.get(gateway_key)

    @property
    def storage(self) -> ConnectionProfile:
        if self._storage is None:
            raise ConfigurationError(f"No '{STORAGE_GROUP}' group found in Kannel configuration")
        return self._storage

    @property
    def gateway_keys(self) -> list[str]:
        return sorted(self._gateways)

    def __len__(self) -> int:
        return len(self._gateways)


def _clean(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return value


def parse_kannel_conf(lines: Iterable[str]) -> RoutingTable:
    """
    Parse Kannel configuration lines into a RoutingTable.

    Lines without a `key = value` pair (blank lines, comments) are ignored.
    """
    gateways: Dict[str, ConnectionProfile] = {}
    storage: Optional[ConnectionProfile] = None

    group: Optional[str] = None
    fields: Dict[str, str] = {}
    smsc_id: Optional[str] = None

    def close_section() -> None:
        nonlocal storage
        if group == SMSC_GROUP:
            if smsc_id:
                gateways[smsc_id] = ConnectionProfile(**fields)
            else:
                log.warning("Ignoring smsc group without smsc-id")
        elif group == STORAGE_GROUP:
            storage = ConnectionProfile(**{**STORAGE_DEFAULTS, **fields})

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key, value = key.strip(), _clean(value)

        if key == "group":
            close_section()
            group = value if value in (SMSC_GROUP, STORAGE_GROUP) else None
            fields = {}
            smsc_id = None
            continue
        if group is None:
            continue
        if key == "smsc-id" and group == SMSC_GROUP:
            smsc_id = value
        elif key in _KEY_FIELDS:
            fields[_KEY_FIELDS[key]] = value
    close_section()

    return RoutingTable(gateways, storage)


def load_routing_table(path: Path | str) -> RoutingTable:
    """
    Read and parse a Kannel configuration file.

    Raises
    ------
    ConfigurationError
        If the file cannot be read.
    """
    conf_path = Path(path)
    try:
        text = conf_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read Kannel configuration {conf_path}: {exc}") from exc

    table = parse_kannel_conf(text.splitlines())
    log.info(
        "Routing table loaded",
        extra={"conf": str(conf_path), "gateways": table.gateway_keys},
    )
    return table


__all__ = ["RoutingTable", "load_routing_table", "parse_kannel_conf"]
