"""
DLR Poller - delivery receipt reconciliation for Kannel and the SMSC status API.

The poller periodically reads unresolved rows from the Kannel `dlr` table,
asks the SMSC status API for their delivery outcome through a fixed-size
worker pool, reports final statuses to each record's callback URL and marks
the rows resolved. When the API signals throttling the next pause is
extended.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from dlr_poller.config import Settings, get_settings
from dlr_poller.domain.models import (
    ConnectionProfile,
    PendingRecord,
    ProcessOutcome,
    StatusResult,
)
from dlr_poller.errors import ConfigurationError, DlrPollerError, StorageUnavailableError
from dlr_poller.orchestrator import CycleLoop, CycleReport, LoopConfig
from dlr_poller.processing import (
    BackoffState,
    DispatchResult,
    RecordProcessor,
    WorkerPoolDispatcher,
)
from dlr_poller.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "ConnectionProfile",
    "PendingRecord",
    "ProcessOutcome",
    "StatusResult",
    # Errors
    "ConfigurationError",
    "DlrPollerError",
    "StorageUnavailableError",
    # Engine
    "BackoffState",
    "CycleLoop",
    "CycleReport",
    "DispatchResult",
    "LoopConfig",
    "RecordProcessor",
    "WorkerPoolDispatcher",
    # Logging
    "configure_logging",
    "get_logger",
]
