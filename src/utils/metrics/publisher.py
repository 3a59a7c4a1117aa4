"""
Metrics publisher for Prometheus HTTP server.

Exposes the registry on /metrics for the lifetime of one bisection run.
The server is stopped when the run ends so the port is released.
"""

import logging
import time

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Gauge,
    Info,
    start_http_server,
)

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Serves a Prometheus registry over HTTP while a run is in progress."""

    def __init__(
        self,
        port: int = 9091,
        registry: CollectorRegistry | None = None,
    ):
        """
        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Registry to serve (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server = None
        self._thread = None

    @property
    def started(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        """
        Start serving metrics. A second call is a no-op.

        Raises:
            RuntimeError: If the port is already in use
        """
        if self.started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            self._server, self._thread = start_http_server(self.port, registry=self.registry)
        except OSError as e:
            raise RuntimeError(
                f"Metrics server port {self.port} is unavailable: {e}"
            ) from e

        logger.info(f"Metrics server started on port {self.port}")

    def stop(self) -> None:
        """Stop serving and release the port."""
        if not self.started:
            return

        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._server = self._thread = None
        logger.info(f"Metrics server on port {self.port} stopped")

    def __enter__(self) -> "MetricsPublisher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


class ApplicationInfo:
    """
    Application metadata and uptime.

    Exposes name, version and the table being scanned.
    """

    def __init__(
        self,
        app_name: str = "rowid-bisect",
        version: str = "1.0.0",
        registry: CollectorRegistry | None = None,
        **labels: str,
    ):
        """
        Initialize application info metrics

        Args:
            app_name: Application name
            version: Application version
            registry: Custom Prometheus registry (default: global REGISTRY)
            **labels: Extra info fields (e.g. table="orders")
        """
        self.registry = registry or REGISTRY

        self.info = Info(
            "rowbisect_application",
            "Application metadata",
            registry=self.registry,
        )
        self.info.info({"name": app_name, "version": version, **labels})

        self._start_time = time.time()
        self.uptime_seconds = Gauge(
            "rowbisect_application_uptime_seconds",
            "Application uptime in seconds",
            registry=self.registry,
        )
        self.uptime_seconds.set_function(self.get_uptime)

    def get_uptime(self) -> float:
        """Get current uptime in seconds"""
        return time.time() - self._start_time
