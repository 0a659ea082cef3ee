"""
Cycle loop for the DLR poller.

Each cycle fetches a bounded batch of pending records, dispatches it through
the worker pool, checks the backoff flag and sleeps:

    Running (fetch + dispatch barrier) -> Sleeping (pause or blocked pause) -> ...

Usage (example from CLI):
    from dlr_poller.orchestrator import CycleLoop, LoopConfig

    loop = CycleLoop(store, processor, backoff, LoopConfig(workers=10))
    loop.run()

The loop ends when `stop()` is called (signal handler) or after the first
cycle when `LoopConfig.once` is set.
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from dlr_poller.domain.models import ProcessOutcome
from dlr_poller.processing.abstract import RecordSource
from dlr_poller.processing.backoff import BackoffState
from dlr_poller.processing.dispatcher import RecordHandler, WorkerPoolDispatcher
from dlr_poller.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class LoopConfig:
    """Cadence and sizing of the cycle loop."""

    workers: int = 10
    limit: int = 1000
    pause: int = 60
    blocked_pause: int = 600
    shutdown_grace: float = 30.0
    once: bool = False


@dataclass
class CycleReport:
    """Observability record produced by every cycle."""

    cycle: int
    dispatched: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    duration_seconds: float = 0.0
    blocked: bool = False
    next_pause_seconds: int = 0


def _outcome_counts(outcomes: Counter) -> Dict[str, int]:
    return {
        (key.value if isinstance(key, ProcessOutcome) else str(key)): count
        for key, count in sorted(outcomes.items(), key=lambda item: str(item[0]))
    }


class CycleLoop:
    """
    Drive fetch -> dispatch -> backoff check -> sleep until stopped.

    The BackoffState is owned here and handed to the processors by reference;
    it is consumed exactly once per cycle, after the dispatch barrier.
    """

    def __init__(
        self,
        source: RecordSource,
        handler: RecordHandler,
        backoff: BackoffState,
        config: LoopConfig,
        sleep: Optional[Callable[[float], bool]] = None,
    ) -> None:
        self.source = source
        self.backoff = backoff
        self.config = config
        self.dispatcher = WorkerPoolDispatcher(
            handler, workers=config.workers, shutdown_grace=config.shutdown_grace
        )
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self.cycles = 0

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown: no new cycle starts and the current one drains."""
        if not self._stop_event.is_set():
            log.info("Stop requested; finishing current cycle")
        self._stop_event.set()

    def next_pause(self) -> tuple[int, bool]:
        """Consume the backoff flag and return `(pause_seconds, was_blocked)`."""
        if self.backoff.consume_and_reset():
            return self.config.blocked_pause, True
        return self.config.pause, False

    def run_cycle(self) -> CycleReport:
        """Run one Running phase and decide the following pause."""
        self.cycles += 1
        report = CycleReport(cycle=self.cycles)
        start = time.perf_counter()

        records = self.source.fetch_pending(self.config.limit)
        result = self.dispatcher.dispatch(records, stop_event=self._stop_event)

        report.duration_seconds = round(time.perf_counter() - start, 3)
        report.dispatched = result.dispatched
        report.outcomes = _outcome_counts(result.outcomes)
        report.next_pause_seconds, report.blocked = self.next_pause()

        log.info(
            f"Processed {report.dispatched} records",
            extra={
                "cycle": report.cycle,
                "outcomes": report.outcomes,
                "duration": report.duration_seconds,
            },
        )
        if report.blocked:
            log.warning(
                "Program is blocked temporarily. Next processing will start after "
                f"{report.next_pause_seconds} seconds",
                extra={"cycle": report.cycle},
            )
        return report

    def run(self) -> Optional[CycleReport]:
        """
        Loop until stopped and return the report of the last cycle that ran.
        """
        last: Optional[CycleReport] = None
        while not self.stopping:
            last = self.run_cycle()
            if self.config.once or self.stopping:
                break
            self._sleep(last.next_pause_seconds)
        log.info("Cycle loop finished", extra={"cycles": self.cycles})
        return last


__all__ = ["CycleLoop", "CycleReport", "LoopConfig"]
