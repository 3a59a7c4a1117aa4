"""
Bisection engine for locating broken rows.

Probes a row identifier range and, when the probe faults, retires the
range and submits its two halves as new work until single faulty rows
are isolated. Recursion happens through the scheduler queue, never
through the call stack.
"""

import logging
import time
from collections.abc import Callable

from .metrics import BROKEN_ROWS_TOTAL, PENDING_RANGES, PROBE_DURATION_SECONDS, PROBES_TOTAL
from .probe import ProbeOutcome, RangeProbe
from .progress import ProgressTracker
from .ranges import RowRange
from .scheduler import TaskScheduler

logger = logging.getLogger(__name__)


class BisectionEngine:
    """
    Decides which ranges to probe and how to react to probe outcomes.

    A probe that raises is treated exactly like a probe reporting FAULT:
    a dropped connection and a corrupted row both cause the range to be
    split. The same range is never probed twice.
    """

    def __init__(
        self,
        probe: RangeProbe,
        scheduler: TaskScheduler,
        tracker: ProgressTracker,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize the engine.

        Args:
            probe: Range probe collaborator
            scheduler: Scheduler that runs probe-and-react units
            tracker: Progress counters for this run
            clock: Monotonic clock used to time probes
        """
        self.probe = probe
        self.scheduler = scheduler
        self.tracker = tracker
        self.clock = clock

    def start(self, row_range: RowRange) -> bool:
        """Submit the initial range of a run. Returns whether work was scheduled."""
        logger.info(
            f"Starting bisection of {row_range} "
            f"(width={row_range.width}, concurrency={self.scheduler.concurrency})"
        )
        return self.submit(row_range)

    def submit_range(self, min_row_id: int, max_row_id: int) -> bool:
        return self.submit(RowRange(min_row_id, max_row_id))

    def submit(self, row_range: RowRange) -> bool:
        """
        Schedule a probe of the range.

        Empty or inverted ranges are discarded without touching any counter.

        Returns:
            True if a task was scheduled

        Raises:
            SchedulerClosedError: If the scheduler no longer accepts work;
                the pending count is restored first
        """
        if row_range.is_empty:
            return False

        pending = self.tracker.task_submitted()
        PENDING_RANGES.set(pending)
        logger.info(
            f"+ {row_range} - New",
            extra={
                "event": "new",
                "min_row_id": row_range.min_row_id,
                "max_row_id": row_range.max_row_id,
            },
        )
        try:
            self.scheduler.submit(lambda: self._probe_and_react(row_range))
        except Exception:
            PENDING_RANGES.set(self.tracker.task_cancelled())
            logger.error(f"+ {row_range} - Rejected by scheduler")
            raise
        return True

    def _probe_and_react(self, row_range: RowRange) -> None:
        try:
            logger.info(
                f"+ {row_range} - Scanning",
                extra={
                    "event": "scanning",
                    "min_row_id": row_range.min_row_id,
                    "max_row_id": row_range.max_row_id,
                },
            )

            started = self.clock()
            outcome = self._run_probe(row_range)
            elapsed = self.clock() - started

            PROBES_TOTAL.labels(outcome=outcome.value).inc()
            PROBE_DURATION_SECONDS.labels(outcome=outcome.value).observe(elapsed)

            if outcome is ProbeOutcome.OK:
                logger.info(
                    f"+ {row_range} - Data is OK (elapsed {elapsed:.6f}s)",
                    extra={
                        "event": "ok",
                        "min_row_id": row_range.min_row_id,
                        "max_row_id": row_range.max_row_id,
                        "elapsed_seconds": elapsed,
                    },
                )
                return

            logger.info(
                f"+ {row_range} - Data is broken (elapsed {elapsed:.6f}s)",
                extra={
                    "event": "broken",
                    "min_row_id": row_range.min_row_id,
                    "max_row_id": row_range.max_row_id,
                    "elapsed_seconds": elapsed,
                },
            )

            if row_range.is_singleton:
                self.tracker.record_broken(row_range.min_row_id)
                BROKEN_ROWS_TOTAL.inc()
                logger.warning(
                    f"+ Discovered broken row, row_id = {row_range.min_row_id}",
                    extra={"event": "broken_row", "row_id": row_range.min_row_id},
                )
            else:
                lower, upper = row_range.split()
                self.submit(lower)
                self.submit(upper)
        finally:
            PENDING_RANGES.set(self.tracker.task_completed())

    def _run_probe(self, row_range: RowRange) -> ProbeOutcome:
        try:
            return self.probe.probe(row_range)
        except Exception as e:
            logger.warning(
                f"Probe of {row_range} raised {type(e).__name__}: {e}; treating as fault"
            )
            return ProbeOutcome.FAULT
