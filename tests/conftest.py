"""
Pytest configuration and shared fixtures for rowid-bisect tests.

Provides an in-memory range probe and helpers that run a complete
bisection without a database.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

import pytest

from rowbisect.engine import BisectionEngine
from rowbisect.monitor import ProgressMonitor
from rowbisect.probe import ProbeOutcome
from rowbisect.progress import ProgressSnapshot, ProgressTracker
from rowbisect.ranges import RowRange
from rowbisect.scheduler import TaskScheduler


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakeRangeProbe:
    """
    Probe that reports FAULT for any range containing a broken row id.

    Thread-safe; records every probed range.
    """

    def __init__(self, broken_rows: Iterable[int] = (), fail_all: bool = False, error: Exception | None = None):
        self.broken_rows = frozenset(broken_rows)
        self.fail_all = fail_all
        self.error = error
        self.probed: list[RowRange] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.probed)

    def probe(self, row_range: RowRange) -> ProbeOutcome:
        with self._lock:
            self.probed.append(row_range)

        if self.error is not None:
            raise self.error
        if self.fail_all:
            return ProbeOutcome.FAULT
        if any(row_id in row_range for row_id in self.broken_rows):
            return ProbeOutcome.FAULT
        return ProbeOutcome.OK


@dataclass
class BisectionResult:
    snapshot: ProgressSnapshot
    broken_row_ids: list[int]
    probe_calls: int
    probed: list[RowRange]


def run_bisection(probe: FakeRangeProbe, initial: RowRange, concurrency: int = 4) -> BisectionResult:
    """Run a full bisection to completion and collect the outcome."""
    tracker = ProgressTracker()
    with TaskScheduler(concurrency) as scheduler:
        engine = BisectionEngine(probe, scheduler, tracker)
        engine.start(initial)
        snapshot = ProgressMonitor(tracker, interval=0.01, reporter=lambda s: None).run()

    return BisectionResult(
        snapshot=snapshot,
        broken_row_ids=tracker.broken_row_ids(),
        probe_calls=probe.calls,
        probed=list(probe.probed),
    )


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture
def scheduler():
    scheduler = TaskScheduler(concurrency=4)
    yield scheduler
    scheduler.shutdown(wait=True)


@pytest.fixture(autouse=True)
def clear_tidb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment TIDB_* variables out of config tests."""
    for key in ("TIDB_HOST", "TIDB_PORT", "TIDB_USER", "TIDB_PASSWORD", "TIDB_DATABASE"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo setup_logging() calls made by a test."""
    root = logging.getLogger()
    level = root.level
    handlers = root.handlers[:]
    yield
    root.setLevel(level)
    root.handlers[:] = handlers
