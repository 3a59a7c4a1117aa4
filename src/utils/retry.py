"""
Retry decorators with exponential backoff for database operations

Provides resilient retry logic for transient failures with:
- Exponential backoff (base 2.0)
- Jitter to prevent thundering herd
- Configurable max retries
- MySQL/TiDB error classification
- Callback support for metrics integration

Only startup work (connecting, reading table bounds) is retried. Range
probes are never retried verbatim; a failing range is split instead.

Usage:
    from utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def read_bounds(cursor):
        cursor.execute("SELECT MIN(_tidb_rowid), MAX(_tidb_rowid) FROM t")
        return cursor.fetchone()
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

# MySQL client/server and TiDB error codes worth retrying
RETRYABLE_ERROR_CODES = frozenset({
    1040,  # Too many connections
    1205,  # Lock wait timeout exceeded
    1213,  # Deadlock found
    2002,  # Can't connect through socket
    2003,  # Can't connect to server
    2006,  # Server has gone away
    2013,  # Lost connection during query
    8027,  # TiDB: information schema is out of date
    9001,  # TiDB: PD server timeout
    9002,  # TiDB: TiKV server timeout
    9005,  # TiDB: region is unavailable
})

# Raised as OperationalError by PyMySQL but never fixed by waiting
NON_RETRYABLE_ERROR_CODES = frozenset({
    1044,  # Access denied for user to database
    1045,  # Access denied for user
    1049,  # Unknown database
})

RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "deadlock",
    "lock wait timeout",
    "lost connection",
    "server has gone away",
    "can't connect",
    "unable to connect",
    "connection refused",
    "connection reset",
    "broken pipe",
    "network error",
    "region is unavailable",
)

RETRYABLE_EXCEPTION_NAMES = frozenset({
    "connectionerror",
    "connectionrefusederror",
    "connectionreseterror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
})


def _compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        # +/-25% of the delay, never below 100ms
        jitter_amount = delay * 0.25
        delay = max(0.1, delay + random.uniform(-jitter_amount, jitter_amount))
    return delay


def _retry_loop(
    func: Callable,
    should_retry: Callable[[Exception], bool],
    max_retries: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
    on_retry: Callable[[int, Exception, float], None] | None,
) -> Callable:
    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        func_name = getattr(func, "__name__", "function")

        for attempt in range(max_retries + 1):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not should_retry(e):
                    logger.error(
                        f"Non-retryable error in {func_name}: {type(e).__name__}: {e}"
                    )
                    raise

                if attempt == max_retries:
                    logger.error(
                        f"Max retries ({max_retries}) exceeded for {func_name}: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                delay = _compute_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                logger.warning(
                    f"Attempt {attempt + 1}/{max_retries} failed for {func_name}: "
                    f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                )

                if on_retry:
                    try:
                        on_retry(attempt + 1, e, delay)
                    except Exception as callback_error:
                        logger.error(f"Error in retry callback: {callback_error}")

                time.sleep(delay)

        raise RuntimeError(f"Unexpected exit from retry loop in {func_name}")

    return wrapper


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Add random jitter to prevent thundering herd (default: True)
        retryable_exceptions: Exception types to retry (default: all exceptions)
        on_retry: Callback function(attempt, exception, delay) called on each retry

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(
            max_retries=5,
            retryable_exceptions=(ConnectionError, TimeoutError),
        )
        def connect():
            return pymysql.connect(host="127.0.0.1", port=4000)
    """
    def should_retry(exc: Exception) -> bool:
        return retryable_exceptions is None or isinstance(exc, retryable_exceptions)

    def decorator(func: Callable) -> Callable:
        return _retry_loop(
            func, should_retry, max_retries, base_delay, max_delay,
            exponential_base, jitter, on_retry,
        )

    return decorator


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient

    PyMySQL errors carry the MySQL error code as their first argument;
    that code is checked first, then the exception type and message.

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable, False otherwise
    """
    args = getattr(exception, "args", ())
    if args and isinstance(args[0], int):
        if args[0] in RETRYABLE_ERROR_CODES:
            return True
        if args[0] in NON_RETRYABLE_ERROR_CODES:
            return False

    if type(exception).__name__.lower() in RETRYABLE_EXCEPTION_NAMES:
        return True

    message = str(exception).lower()
    return any(pattern in message for pattern in RETRYABLE_PATTERNS)


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Convenience decorator for database operations with smart exception filtering

    Only retries transient errors (lost connection, timeouts, deadlocks,
    TiKV/PD unavailability). Syntax errors and unknown tables fail
    immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        on_retry: Callback function(attempt, exception, delay) called on each retry
    """
    def decorator(func: Callable) -> Callable:
        return _retry_loop(
            func, is_retryable_db_exception, max_retries, base_delay, 60.0,
            2.0, True, on_retry,
        )

    return decorator
