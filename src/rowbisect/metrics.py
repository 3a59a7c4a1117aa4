"""
Prometheus metrics for bisection runs.

This module defines metrics to track probe throughput, probe latency,
scheduler load and confirmed broken rows.
"""

from prometheus_client import Counter, Gauge, Histogram

from utils.metrics import get_or_create_metric

PROBES_TOTAL = get_or_create_metric(
    lambda: Counter(
        "rowbisect_probes_total",
        "Total range probes executed",
        ["outcome"],  # ok, fault
    ),
    "rowbisect_probes",
)

PROBE_DURATION_SECONDS = get_or_create_metric(
    lambda: Histogram(
        "rowbisect_probe_duration_seconds",
        "Wall-clock time of a single range probe",
        ["outcome"],
        buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60, 300],
    ),
    "rowbisect_probe_duration_seconds",
)

BROKEN_ROWS_TOTAL = get_or_create_metric(
    lambda: Counter(
        "rowbisect_broken_rows_total",
        "Total rows confirmed broken",
    ),
    "rowbisect_broken_rows",
)

PENDING_RANGES = get_or_create_metric(
    lambda: Gauge(
        "rowbisect_pending_ranges",
        "Ranges submitted but not yet completed",
    ),
    "rowbisect_pending_ranges",
)

SCHEDULER_WORKERS = get_or_create_metric(
    lambda: Gauge(
        "rowbisect_scheduler_workers",
        "Configured scheduler worker threads",
    ),
    "rowbisect_scheduler_workers",
)

SCHEDULER_QUEUE_DEPTH = get_or_create_metric(
    lambda: Gauge(
        "rowbisect_scheduler_queue_depth",
        "Units of work waiting for a free worker",
    ),
    "rowbisect_scheduler_queue_depth",
)
