"""
Domain package for the DLR poller.

Exports the core domain models used across the processing engine and the
infrastructure layer. Keep this package focused on data definitions.
"""

from dlr_poller.domain.models import (
    ConnectionProfile,
    PendingRecord,
    ProcessOutcome,
    StatusResult,
)

__all__ = [
    "ConnectionProfile",
    "PendingRecord",
    "ProcessOutcome",
    "StatusResult",
]
