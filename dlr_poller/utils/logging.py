"""
Logging utilities for the DLR poller.

Centralizes logging configuration so the CLI, the cycle loop and the workers
log consistently. Uses standard library logging with a human-readable
formatter by default, an optional JSON formatter for structured logs, and an
optional syslog handler for running as a system service.

Usage:
    from dlr_poller.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("message", extra={"dispatched": 1000})
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from typing import Any, Dict, Optional

SYSLOG_IDENT = "dlr_poller"

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "thread": record.threadName,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS and not key.startswith("_"):
            payload[key] = value
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def _syslog_address() -> str | tuple[str, int]:
    return "/dev/log" if os.path.exists("/dev/log") else ("localhost", 514)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    syslog: bool = False,
    force: bool = True,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Whether to emit logs as JSON. If False, uses a concise human formatter.
    syslog : bool
        Also send records to the local syslog daemon (facility `daemon`).
    force : bool
        Whether to override existing logging configuration (recommended in CLI apps).
    """
    formatter_name = "json" if json_logs else "console"
    handlers: Dict[str, Dict[str, Any]] = {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": formatter_name,
            "level": level,
        }
    }
    if syslog:
        handlers["syslog"] = {
            "class": "logging.handlers.SysLogHandler",
            "address": _syslog_address(),
            "facility": "daemon",
            "formatter": "syslog",
            "level": level,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "syslog": {
                    "format": f"{SYSLOG_IDENT}: %(levelname)s %(message)s",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": handlers,
            "root": {
                "handlers": list(handlers),
                "level": level,
            },
        }
    )
    # httpx logs every request at INFO; keep it for DEBUG runs only
    if level.upper() != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "SYSLOG_IDENT"]
