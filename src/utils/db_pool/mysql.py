"""MySQL/TiDB connection pool implementation."""

from typing import Any

import pymysql
from opentelemetry import trace

from utils.tracing import trace_operation

from .base import BaseConnectionPool


class MySQLConnectionPool(BaseConnectionPool):
    """Connection pool for MySQL-protocol databases such as TiDB."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 4000,
        database: str = "test",
        user: str = "root",
        password: str = "",
        connect_timeout: int = 10,
        read_timeout: int | None = None,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        """
        Initialize MySQL connection pool.

        Args:
            host: Server host
            port: Server port (TiDB default 4000)
            database: Database name
            user: Username
            password: Password (may be empty)
            connect_timeout: Seconds to wait while connecting
            read_timeout: Seconds to wait for a query result (None = no limit)
            charset: Connection character set
            **kwargs: Additional arguments for BaseConnectionPool
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.charset = charset

        super().__init__(**kwargs)

    def _create_connection(self) -> pymysql.connections.Connection:
        """Create a new autocommit connection."""
        with trace_operation(
            "mysql_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            return pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                charset=self.charset,
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                autocommit=True,
            )

    def _is_connection_healthy(self, conn: pymysql.connections.Connection) -> bool:
        """Check if the connection still answers a trivial query."""
        if conn is None or not conn.open:
            return False

        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return True
        except pymysql.Error:
            return False

    def _is_reusable_after_error(self, conn: pymysql.connections.Connection, error: Exception) -> bool:
        """
        Keep the connection after query-level errors only.

        OperationalError and InterfaceError mean the session is gone or in
        an unknown state (lost connection, server gone away).
        """
        if isinstance(error, (pymysql.err.OperationalError, pymysql.err.InterfaceError)):
            return False
        return isinstance(error, pymysql.Error) and bool(conn.open)

    def _close_connection(self, conn: pymysql.connections.Connection) -> None:
        if conn is not None and conn.open:
            try:
                conn.close()
            except pymysql.Error:
                pass

    def _get_db_type(self) -> str:
        return "mysql"
