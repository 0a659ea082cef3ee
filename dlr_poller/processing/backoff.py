"""
Process-wide throttling flag shared between workers and the cycle loop.
"""

from __future__ import annotations

import threading


class BackoffState:
    """
    Throttling signal raised by any worker and consumed once per cycle.

    Within a cycle the flag is monotonic: once raised it stays raised until
    the cycle loop consumes it after the dispatcher has joined every worker.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blocked = False

    def raise_flag(self) -> None:
        """Mark the upstream API as throttling us. Idempotent."""
        with self._lock:
            self._blocked = True

    def consume_and_reset(self) -> bool:
        """Return whether the flag was raised and clear it unconditionally."""
        with self._lock:
            was_blocked = self._blocked
            self._blocked = False
            return was_blocked

    @property
    def is_raised(self) -> bool:
        with self._lock:
            return self._blocked


__all__ = ["BackoffState"]
