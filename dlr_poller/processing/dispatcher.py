"""
Fixed-size worker pool that fans one cycle's records out to the processor.

Pool lifetime is exactly one cycle: `dispatch` creates a bounded queue and W
worker threads, streams records into the queue as the source yields them,
closes the queue with one sentinel per worker and joins every thread before
returning. Nothing is processed after `dispatch` returns unless a stop was
requested and the shutdown grace period ran out.
"""

from __future__ import annotations

import queue
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from dlr_poller.domain.models import PendingRecord, ProcessOutcome
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)

JOIN_POLL_SECONDS = 0.2

_CLOSE = object()

RecordHandler = Callable[[PendingRecord], ProcessOutcome]


@dataclass
class DispatchResult:
    """Outcome of one dispatch barrier."""

    dispatched: int = 0
    outcomes: Counter = field(default_factory=Counter)
    stopped_early: bool = False
    abandoned: bool = False


class WorkerPoolDispatcher:
    """
    Run a handler over a stream of records with at most `workers` in flight.

    Parameters
    ----------
    handler : callable
        Called once per record from a worker thread; returns a ProcessOutcome.
    workers : int
        Number of worker threads (and queue capacity) per cycle.
    shutdown_grace : float
        Seconds to wait for in-flight records once a stop has been requested.
    """

    def __init__(self, handler: RecordHandler, workers: int, shutdown_grace: float = 30.0) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.handler = handler
        self.workers = workers
        self.shutdown_grace = shutdown_grace

    def dispatch(
        self,
        records: Iterable[PendingRecord],
        stop_event: Optional[threading.Event] = None,
    ) -> DispatchResult:
        """
        Process every record and return once all workers have exited.

        If `stop_event` is set while records are still arriving, no further
        records are handed out, queued records that no worker picked up yet
        are dropped (they stay unresolved in storage), and the join waits at
        most `shutdown_grace` seconds.
        """
        result = DispatchResult()
        lock = threading.Lock()
        jobs: "queue.Queue[object]" = queue.Queue(maxsize=self.workers)
        threads = [
            threading.Thread(
                target=self._work,
                args=(jobs, result.outcomes, lock),
                name=f"dlr-worker-{index}",
                daemon=True,
            )
            for index in range(self.workers)
        ]
        for thread in threads:
            thread.start()

        iterator = iter(records)
        try:
            for record in iterator:
                if not self._put(jobs, record, stop_event):
                    result.stopped_early = True
                    break
                result.dispatched += 1
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()
            if _is_set(stop_event):
                result.dispatched -= self._drain(jobs)
            for _ in threads:
                jobs.put(_CLOSE)
            result.abandoned = not self._join(threads, stop_event)

        if result.stopped_early:
            log.info(
                "Stop requested; remaining records left for the next run",
                extra={"dispatched": result.dispatched},
            )
        return result

    def _work(self, jobs: "queue.Queue[object]", outcomes: Counter, lock: threading.Lock) -> None:
        while True:
            item = jobs.get()
            if item is _CLOSE:
                return
            try:
                outcome = self.handler(item)  # type: ignore[arg-type]
            except Exception:  # noqa: BLE001
                log.exception(
                    "Record handler crashed", extra={"record_id": getattr(item, "id", None)}
                )
                outcome = ProcessOutcome.CRASHED
            with lock:
                outcomes[outcome] += 1

    @staticmethod
    def _put(
        jobs: "queue.Queue[object]", record: PendingRecord, stop_event: Optional[threading.Event]
    ) -> bool:
        """Block until a worker slot frees up; give up once a stop is requested."""
        while not _is_set(stop_event):
            try:
                jobs.put(record, timeout=JOIN_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    @staticmethod
    def _drain(jobs: "queue.Queue[object]") -> int:
        drained = 0
        while True:
            try:
                item = jobs.get_nowait()
            except queue.Empty:
                return drained
            if item is not _CLOSE:
                drained += 1

    def _join(self, threads: List[threading.Thread], stop_event: Optional[threading.Event]) -> bool:
        """Join all workers; returns False if the grace period expired first."""
        deadline: Optional[float] = None
        for thread in threads:
            while thread.is_alive():
                if _is_set(stop_event):
                    if deadline is None:
                        deadline = time.monotonic() + self.shutdown_grace
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        alive = sum(1 for t in threads if t.is_alive())
                        log.warning(
                            f"Shutdown grace expired; abandoning {alive} busy worker(s)",
                            extra={"grace_seconds": self.shutdown_grace},
                        )
                        return False
                    thread.join(min(remaining, JOIN_POLL_SECONDS))
                else:
                    thread.join(JOIN_POLL_SECONDS)
        return True


def _is_set(event: Optional[threading.Event]) -> bool:
    return event is not None and event.is_set()


__all__ = ["DispatchResult", "RecordHandler", "WorkerPoolDispatcher"]
