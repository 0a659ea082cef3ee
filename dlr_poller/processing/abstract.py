"""
Collaborator interfaces for the processing engine.

The record source/sink is an external system (the Kannel `dlr` table in
production). The engine only depends on these protocols so tests and
alternative stores can plug in without a database.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from dlr_poller.domain.models import PendingRecord


@runtime_checkable
class RecordSource(Protocol):
    """
    Provides the unresolved records for one cycle.
    """

    def fetch_pending(self, limit: int) -> Iterable[PendingRecord]:
        """
        Return up to `limit` unresolved records, ordered by descending id.

        Implementations may stream: the dispatcher starts handing records to
        workers as soon as the first one is available.
        """
        ...


@runtime_checkable
class StatusSink(Protocol):
    """
    Persists the final status of a record.
    """

    def set_status(self, record_id: int, status: str) -> bool:
        """Update one record; errors are logged by the sink and reported as False."""
        ...


@runtime_checkable
class RecordStore(RecordSource, StatusSink, Protocol):
    """Source and sink backed by the same storage, which owns its connections."""

    def close(self) -> None:
        """Release the storage connections."""
        ...


__all__ = ["RecordSource", "RecordStore", "StatusSink"]
