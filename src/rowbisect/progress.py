"""
Progress counters shared between bisection workers and the monitor.

The pending, finished and broken counters are the only mutable state
shared across workers. Every mutation goes through AtomicCounter so
concurrent updates are never lost.
"""

import logging
import threading
from typing import NamedTuple

logger = logging.getLogger(__name__)


class ProgressSnapshot(NamedTuple):
    """Point-in-time view of the run counters."""

    pending: int
    finished: int
    broken: int


class AtomicCounter:
    """Integer counter whose updates are atomic across threads."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add amount and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        """Subtract amount and return the new value."""
        with self._lock:
            self._value -= amount
            return self._value

    def load(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.load()})"


class ProgressTracker:
    """
    Tracks pending, finished and broken counts for one bisection run.

    Instances are passed explicitly to the engine and the monitor, so
    several independent runs can coexist in one process.
    """

    def __init__(self):
        self.pending = AtomicCounter()
        self.finished = AtomicCounter()
        self.broken = AtomicCounter()
        self._broken_rows: list[int] = []
        self._broken_lock = threading.Lock()
        self._done = threading.Event()

    def task_submitted(self) -> int:
        """Record a newly submitted range. Returns the pending count."""
        self._done.clear()
        return self.pending.increment()

    def task_completed(self) -> int:
        """
        Record a completed range (OK or fault).

        Returns:
            Pending count after the decrement

        Raises:
            RuntimeError: If more tasks complete than were submitted
        """
        self.finished.increment()
        return self._retire()

    def task_cancelled(self) -> int:
        """
        Withdraw a submitted range that will never run.

        Returns:
            Pending count after the decrement
        """
        return self._retire()

    def _retire(self) -> int:
        remaining = self.pending.decrement()
        if remaining < 0:
            raise RuntimeError(f"Pending task count went negative: {remaining}")
        if remaining == 0:
            self._done.set()
        return remaining

    def record_broken(self, row_id: int) -> int:
        """Record a confirmed broken row. Returns the broken count."""
        with self._broken_lock:
            self._broken_rows.append(row_id)
            return self.broken.increment()

    def broken_row_ids(self) -> list[int]:
        """Sorted identifiers of every broken row found so far."""
        with self._broken_lock:
            return sorted(self._broken_rows)

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            pending=self.pending.load(),
            finished=self.finished.load(),
            broken=self.broken.load(),
        )

    def is_done(self) -> bool:
        return self.pending.load() == 0

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until pending reaches zero or the timeout elapses.

        Returns:
            True if all submitted tasks have completed
        """
        self._done.wait(timeout)
        return self.is_done()
