"""
Prometheus metric helpers

Usage:
    from utils.metrics import MetricsPublisher, get_or_create_metric

    PROBES = get_or_create_metric(
        lambda: Counter("rowbisect_probes_total", "Probes", ["outcome"]),
        "rowbisect_probes",
    )

    MetricsPublisher(port=9091).start()
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import ApplicationInfo, MetricsPublisher

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under that name.

    Module reloads (as happen under some test runners) would otherwise
    fail with a duplicate registration error.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Registered name used for lookup (without _total suffix)
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


__all__ = [
    "MetricsPublisher",
    "ApplicationInfo",
    "get_or_create_metric",
]
