"""
Processing package for the DLR poller.

Re-exports the collaborator protocols and the engine pieces (backoff flag,
record processor, worker pool dispatcher) so downstream code can import from
`dlr_poller.processing` directly.
"""

from dlr_poller.processing.abstract import RecordSource, RecordStore, StatusSink
from dlr_poller.processing.backoff import BackoffState
from dlr_poller.processing.dispatcher import DispatchResult, WorkerPoolDispatcher
from dlr_poller.processing.processor import RecordProcessor

__all__ = [
    # Abstracts
    "RecordSource",
    "RecordStore",
    "StatusSink",
    # Engine
    "BackoffState",
    "DispatchResult",
    "RecordProcessor",
    "WorkerPoolDispatcher",
]
