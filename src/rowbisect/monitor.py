"""
Progress monitor that owns the lifetime of a bisection run.

Wakes once per interval, or as soon as the tracker signals that nothing
is pending, reports the counters, and returns when the run is complete.
"""

import logging
from collections.abc import Callable

from .progress import ProgressSnapshot, ProgressTracker

logger = logging.getLogger(__name__)


def log_snapshot(snapshot: ProgressSnapshot) -> None:
    """Default reporter: one statistics line per tick."""
    logger.info(
        f"+ Task statistics: {snapshot.pending} pending tasks, "
        f"{snapshot.finished} finished tasks, {snapshot.broken} broken rows",
        extra={"event": "statistics", **snapshot._asdict()},
    )


class ProgressMonitor:
    """Polls a ProgressTracker until all submitted ranges are resolved."""

    def __init__(
        self,
        tracker: ProgressTracker,
        interval: float = 1.0,
        reporter: Callable[[ProgressSnapshot], None] | None = None,
    ):
        """
        Initialize the monitor.

        Args:
            tracker: Counters of the run being observed
            interval: Seconds between statistics lines (default: 1.0)
            reporter: Callable receiving each snapshot (default: log it)

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.tracker = tracker
        self.interval = interval
        self.reporter = reporter or log_snapshot
        self.ticks = 0

    def run(self) -> ProgressSnapshot:
        """
        Block until pending reaches zero.

        Returns:
            Final snapshot of the counters
        """
        while True:
            done = self.tracker.wait(self.interval)
            snapshot = self.tracker.snapshot()
            self.ticks += 1
            self.reporter(snapshot)

            if done and snapshot.pending == 0:
                logger.info("+ All tasks are finished")
                return snapshot
