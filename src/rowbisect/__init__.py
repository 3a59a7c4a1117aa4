"""
Row-level fault localization for TiDB/MySQL tables

Pinpoints which rows in a table make the storage or query engine fail by
probing row-identifier ranges and bisecting the failing ones concurrently.

Components:
- ranges: Half-open row identifier ranges and splitting
- progress: Shared pending/finished/broken counters
- scheduler: Bounded-concurrency task executor
- engine: Bisection algorithm
- monitor: Progress reporting and run termination
- probe: Range probes against the target table
- bounds: Startup discovery of the row identifier space

Usage:
    from rowbisect.engine import BisectionEngine
    from rowbisect.progress import ProgressTracker
    from rowbisect.scheduler import TaskScheduler
"""

__version__ = "1.0.0"
__all__ = [
    "bounds",
    "engine",
    "exceptions",
    "monitor",
    "probe",
    "progress",
    "ranges",
    "scheduler",
]
