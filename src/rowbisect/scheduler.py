"""
Bounded-concurrency task scheduler.

Runs submitted units of work on a fixed pool of worker threads using
ThreadPoolExecutor. The executor queue is unbounded, so running units
may submit further work without blocking on a full buffer.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from .exceptions import SchedulerClosedError
from .metrics import SCHEDULER_QUEUE_DEPTH, SCHEDULER_WORKERS

logger = logging.getLogger(__name__)


class TaskScheduler:
    """
    Executes units of work with at most `concurrency` running at once.

    The scheduler knows nothing about what the units do. It guarantees
    each submitted unit is invoked exactly once, not that it succeeds.
    """

    def __init__(self, concurrency: int = 2, thread_name_prefix: str = "rowbisect-worker"):
        """
        Initialize the scheduler.

        Args:
            concurrency: Number of worker threads (default: 2)
            thread_name_prefix: Prefix for worker thread names

        Raises:
            ValueError: If concurrency is smaller than 1
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.concurrency = concurrency
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency,
            thread_name_prefix=thread_name_prefix,
        )
        self._lock = threading.Lock()
        self._closed = False
        self._submitted = 0
        self._queued = 0
        self._in_flight = 0
        self._idle = threading.Event()
        self._idle.set()

        SCHEDULER_WORKERS.set(concurrency)
        logger.info(f"TaskScheduler initialized: concurrency={concurrency}")

    @property
    def submitted(self) -> int:
        """Total number of units accepted so far."""
        with self._lock:
            return self._submitted

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, unit: Callable[[], None]) -> None:
        """
        Enqueue a unit of work and return immediately.

        Args:
            unit: Zero-argument callable to run on a worker thread

        Raises:
            SchedulerClosedError: If the scheduler has been shut down
        """
        with self._lock:
            if self._closed:
                raise SchedulerClosedError("Cannot submit work to a closed scheduler")
            self._submitted += 1
            self._queued += 1
            self._in_flight += 1
            self._idle.clear()
            SCHEDULER_QUEUE_DEPTH.set(self._queued)
            self._executor.submit(self._run, unit)

    def _run(self, unit: Callable[[], None]) -> None:
        with self._lock:
            self._queued -= 1
            SCHEDULER_QUEUE_DEPTH.set(self._queued)

        try:
            unit()
        except Exception as e:
            # Future results are never collected, so report here
            logger.error(f"Unit of work raised {type(e).__name__}: {e}", exc_info=True)
        finally:
            # Work submitted by the unit is already counted, so zero means idle
            with self._lock:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._idle.set()

    def drain(self, timeout: float | None = None) -> bool:
        """
        Block until no unit is queued or running.

        Units may keep submitting while the scheduler drains; it returns
        only once the last of them has finished.

        Returns:
            True if the scheduler became idle within the timeout
        """
        return self._idle.wait(timeout)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """
        Stop accepting work and release the worker threads.

        Args:
            wait: Block until running units finish
            cancel_pending: Drop queued units that have not started; only
                used when the process is being torn down
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
        SCHEDULER_WORKERS.set(0)
        SCHEDULER_QUEUE_DEPTH.set(0)
        logger.debug("TaskScheduler shut down")

    def __enter__(self) -> "TaskScheduler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.drain()
            self.shutdown(wait=True)
        else:
            self.shutdown(wait=False, cancel_pending=True)
