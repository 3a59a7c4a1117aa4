"""
Database connection pooling for MySQL-protocol databases.

Provides a thread-safe connection pool with health checks, metrics,
and automatic connection recycling, shared by all probe workers.
"""

from .base import (
    BaseConnectionPool,
    ConnectionPoolError,
    PoolClosedError,
    PooledConnection,
    PoolExhaustedError,
)
from .mysql import MySQLConnectionPool

__all__ = [
    "BaseConnectionPool",
    "MySQLConnectionPool",
    "PooledConnection",
    "ConnectionPoolError",
    "PoolExhaustedError",
    "PoolClosedError",
]
