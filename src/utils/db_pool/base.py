"""
Base classes and functionality for database connection pooling.

Provides thread-safe connection pools with health checks, metrics,
and automatic connection recycling to prevent stale connections. Every
bisection worker borrows a connection for the duration of one probe.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from queue import Empty, Full, Queue
from typing import Any

from prometheus_client import Counter, Gauge, Histogram

from utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


CONNECTION_POOL_SIZE = get_or_create_metric(
    lambda: Gauge(
        "db_connection_pool_size",
        "Current size of database connection pool",
        ["database_type", "pool_name"],
    ),
    "db_connection_pool_size",
)

CONNECTION_POOL_ACTIVE = get_or_create_metric(
    lambda: Gauge(
        "db_connection_pool_active",
        "Number of connections currently borrowed from the pool",
        ["database_type", "pool_name"],
    ),
    "db_connection_pool_active",
)

CONNECTION_POOL_WAITS = get_or_create_metric(
    lambda: Counter(
        "db_connection_pool_waits_total",
        "Number of times a connection request had to wait",
        ["database_type", "pool_name"],
    ),
    "db_connection_pool_waits",
)

CONNECTION_POOL_ERRORS = get_or_create_metric(
    lambda: Counter(
        "db_connection_pool_errors_total",
        "Number of connection pool errors",
        ["database_type", "pool_name", "error_type"],
    ),
    "db_connection_pool_errors",
)

CONNECTION_ACQUIRE_TIME = get_or_create_metric(
    lambda: Histogram(
        "db_connection_acquire_seconds",
        "Time to acquire a connection from pool",
        ["database_type", "pool_name"],
        buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    ),
    "db_connection_acquire_seconds",
)


@dataclass(eq=False)
class PooledConnection:
    """Wrapper for a pooled database connection with metadata."""

    connection: Any
    created_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)
    use_count: int = 0
    is_healthy: bool = True

    def mark_used(self) -> None:
        """Mark connection as used and update timestamp."""
        self.last_used = time.monotonic()
        self.use_count += 1

    def age(self, now: float | None = None) -> float:
        return (now or time.monotonic()) - self.created_at

    def idle_time(self, now: float | None = None) -> float:
        return (now or time.monotonic()) - self.last_used


class ConnectionPoolError(Exception):
    """Base exception for connection pool errors."""

    pass


class PoolExhaustedError(ConnectionPoolError):
    """Raised when no connection becomes available within the acquire timeout."""

    pass


class PoolClosedError(ConnectionPoolError):
    """Raised when attempting to use a closed pool."""

    pass


class BaseConnectionPool:
    """
    Base class for database connection pools.

    Subclasses implement _create_connection, _is_connection_healthy,
    _close_connection and _get_db_type.
    """

    def __init__(
        self,
        min_size: int = 1,
        max_size: int = 10,
        max_idle_time: float = 300,
        max_lifetime: float = 3600,
        validation_interval: float = 30,
        health_check_interval: float = 60,
        acquire_timeout: float = 30.0,
        pool_name: str = "default",
    ):
        """
        Initialize connection pool.

        Args:
            min_size: Minimum number of connections to maintain
            max_size: Maximum number of connections allowed
            max_idle_time: Idle seconds before a connection is recycled
            max_lifetime: Maximum connection lifetime in seconds
            validation_interval: Idle seconds after which a connection is
                pinged before being handed out
            health_check_interval: Interval for background health checks in seconds
            acquire_timeout: Timeout for acquiring connection in seconds
            pool_name: Name of the pool for metrics

        Raises:
            ValueError: If the sizes are inconsistent
        """
        if max_size < 1 or min_size < 0 or min_size > max_size:
            raise ValueError(f"Invalid pool sizes: min_size={min_size}, max_size={max_size}")

        self.min_size = min_size
        self.max_size = max_size
        self.max_idle_time = max_idle_time
        self.max_lifetime = max_lifetime
        self.validation_interval = validation_interval
        self.health_check_interval = health_check_interval
        self.acquire_timeout = acquire_timeout
        self.pool_name = pool_name

        self._pool: Queue[PooledConnection] = Queue(maxsize=max_size)
        self._all_connections: list[PooledConnection] = []
        self._lock = threading.RLock()
        self._closed = False
        self._stop_event = threading.Event()

        self._initialize_pool()

        self._health_check_thread = threading.Thread(
            target=self._health_check_worker,
            name=f"{pool_name}-health-check",
            daemon=True,
        )
        self._health_check_thread.start()

        logger.info(
            f"Initialized {self.__class__.__name__} '{pool_name}' "
            f"(min={min_size}, max={max_size})"
        )

    def _labels(self) -> dict[str, str]:
        return {"database_type": self._get_db_type(), "pool_name": self.pool_name}

    def _new_pooled_connection(self) -> PooledConnection:
        """Create a connection and register it. Caller holds the lock."""
        pooled_conn = PooledConnection(connection=self._create_connection())
        self._all_connections.append(pooled_conn)
        return pooled_conn

    def _initialize_pool(self) -> None:
        """
        Open min_size connections.

        The first failure propagates so a misconfigured pool is reported
        at startup rather than on the first probe.
        """
        with self._lock:
            for _ in range(self.min_size):
                try:
                    self._pool.put_nowait(self._new_pooled_connection())
                except Exception as e:
                    logger.error(f"Failed to create initial connection: {e}")
                    CONNECTION_POOL_ERRORS.labels(
                        **self._labels(), error_type="initialization"
                    ).inc()
                    self._close_all()
                    raise
            self._update_metrics()

    def _create_connection(self) -> Any:
        """Create a new database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _is_connection_healthy(self, conn: Any) -> bool:
        """Check if connection is healthy. Must be implemented by subclasses."""
        raise NotImplementedError

    def _close_connection(self, conn: Any) -> None:
        """Close a database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _get_db_type(self) -> str:
        """Get database type for metrics. Must be implemented by subclasses."""
        raise NotImplementedError

    def _is_connection_closed(self, conn: Any) -> bool:
        """Cheap local check, no round trip. Drivers without an open flag are assumed open."""
        return getattr(conn, "open", True) is False

    def _is_reusable_after_error(self, conn: Any, error: Exception) -> bool:
        """
        Whether a connection may go back to the pool after a failed operation.

        The default discards it; subclasses keep it for errors that leave
        the session intact.
        """
        return False

    def _check_connection_health(self, pooled_conn: PooledConnection, ping: bool) -> bool:
        """
        Check if a pooled connection may be handed out.

        Checks the driver's open flag, lifetime and idle time always;
        issues a liveness query only when ping is True.
        """
        if self._is_connection_closed(pooled_conn.connection):
            logger.debug("Connection closed by the driver, recycling")
            pooled_conn.is_healthy = False
            return False

        now = time.monotonic()

        if pooled_conn.age(now) > self.max_lifetime:
            logger.debug("Connection exceeded max lifetime, recycling")
            return False

        if pooled_conn.idle_time(now) > self.max_idle_time:
            logger.debug("Connection exceeded max idle time, recycling")
            return False

        if not ping:
            return True

        try:
            pooled_conn.is_healthy = self._is_connection_healthy(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            pooled_conn.is_healthy = False
            CONNECTION_POOL_ERRORS.labels(**self._labels(), error_type="health_check").inc()
        return pooled_conn.is_healthy

    def _recycle_connection(self, pooled_conn: PooledConnection) -> None:
        """Close and forget a connection."""
        try:
            self._close_connection(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Error closing connection: {e}")
        finally:
            with self._lock:
                if pooled_conn in self._all_connections:
                    self._all_connections.remove(pooled_conn)
                self._update_metrics()

    def _health_check_worker(self) -> None:
        """Background worker that recycles stale idle connections."""
        while not self._stop_event.wait(self.health_check_interval):
            try:
                self._perform_health_checks()
            except Exception as e:
                logger.error(f"Health check worker error: {e}")

    def _perform_health_checks(self) -> None:
        """Check idle connections and top the pool back up to min_size."""
        if self._closed:
            return

        idle: list[PooledConnection] = []
        while True:
            try:
                idle.append(self._pool.get_nowait())
            except Empty:
                break

        for pooled_conn in idle:
            if self._check_connection_health(pooled_conn, ping=True):
                self._pool.put_nowait(pooled_conn)
            else:
                self._recycle_connection(pooled_conn)
                logger.info("Recycled unhealthy idle connection")

        with self._lock:
            needed = self.min_size - len(self._all_connections)
            for _ in range(max(needed, 0)):
                try:
                    self._pool.put_nowait(self._new_pooled_connection())
                except Exception as e:
                    logger.error(f"Failed to create replacement connection: {e}")
                    CONNECTION_POOL_ERRORS.labels(
                        **self._labels(), error_type="replenishment"
                    ).inc()
                    break
            self._update_metrics()

    def _update_metrics(self) -> None:
        with self._lock:
            total_size = len(self._all_connections)
            CONNECTION_POOL_SIZE.labels(**self._labels()).set(total_size)
            CONNECTION_POOL_ACTIVE.labels(**self._labels()).set(
                total_size - self._pool.qsize()
            )

    def _take_connection(self, deadline: float) -> PooledConnection:
        """Borrow an idle connection, open a new one, or wait for a return."""
        try:
            return self._pool.get_nowait()
        except Empty:
            pass

        with self._lock:
            if len(self._all_connections) < self.max_size:
                try:
                    pooled_conn = self._new_pooled_connection()
                    logger.debug("Created new connection for pool")
                    return pooled_conn
                except Exception:
                    CONNECTION_POOL_ERRORS.labels(**self._labels(), error_type="creation").inc()
                    raise

        CONNECTION_POOL_WAITS.labels(**self._labels()).inc()
        remaining = deadline - time.monotonic()
        try:
            return self._pool.get(timeout=max(remaining, 0.001))
        except Empty:
            raise PoolExhaustedError(
                f"No connection available within {self.acquire_timeout}s"
            ) from None

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Borrow a connection from the pool.

        Yields:
            Database connection

        Raises:
            PoolClosedError: If pool is closed
            PoolExhaustedError: If no connection available within timeout
        """
        if self._closed:
            raise PoolClosedError("Connection pool is closed")

        start_time = time.monotonic()
        deadline = start_time + self.acquire_timeout

        while True:
            pooled_conn = self._take_connection(deadline)
            ping = pooled_conn.idle_time() > self.validation_interval
            if self._check_connection_health(pooled_conn, ping=ping):
                break
            logger.info("Connection unhealthy, recycling and retrying")
            self._recycle_connection(pooled_conn)
            if time.monotonic() >= deadline:
                raise PoolExhaustedError(
                    f"No healthy connection available within {self.acquire_timeout}s"
                )

        pooled_conn.mark_used()
        self._update_metrics()
        CONNECTION_ACQUIRE_TIME.labels(**self._labels()).observe(
            time.monotonic() - start_time
        )

        try:
            yield pooled_conn.connection
        except Exception as e:
            if not self._is_reusable_after_error(pooled_conn.connection, e):
                logger.info(f"Discarding connection after {type(e).__name__}: {e}")
                pooled_conn.is_healthy = False
                CONNECTION_POOL_ERRORS.labels(**self._labels(), error_type="discarded").inc()
            raise
        finally:
            self._release(pooled_conn)

    def _release(self, pooled_conn: PooledConnection) -> None:
        if (
            self._closed
            or not pooled_conn.is_healthy
            or self._is_connection_closed(pooled_conn.connection)
        ):
            self._recycle_connection(pooled_conn)
            return
        try:
            self._pool.put_nowait(pooled_conn)
        except Full:
            logger.error("Pool queue full on release, closing connection")
            self._recycle_connection(pooled_conn)
            return
        self._update_metrics()

    def _close_all(self) -> None:
        with self._lock:
            for pooled_conn in self._all_connections:
                try:
                    self._close_connection(pooled_conn.connection)
                except Exception as e:
                    logger.warning(f"Error closing connection: {e}")
            self._all_connections.clear()

            while True:
                try:
                    self._pool.get_nowait()
                except Empty:
                    break

    def close(self) -> None:
        """Close all connections and shutdown the pool."""
        if self._closed:
            return

        logger.info(f"Closing connection pool '{self.pool_name}'")
        self._closed = True
        self._stop_event.set()
        self._close_all()
        self._update_metrics()

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics."""
        with self._lock:
            total_size = len(self._all_connections)
            idle_size = self._pool.qsize()

            return {
                "pool_name": self.pool_name,
                "total_connections": total_size,
                "idle_connections": idle_size,
                "active_connections": total_size - idle_size,
                "min_size": self.min_size,
                "max_size": self.max_size,
                "closed": self._closed,
            }

    def __enter__(self) -> "BaseConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
