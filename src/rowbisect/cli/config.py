"""
Run configuration for the CLI.

Merges command-line options with TIDB_* environment variables and
validates everything that must hold before a connection is opened.
"""

import argparse
import logging
import os
from dataclasses import dataclass

from utils.sql_safety import validate_identifier, validate_integer_param, validate_schema_table

from ..exceptions import ConfigurationError, InvalidBoundsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionConfig:
    """Where and how to connect."""

    host: str
    port: int
    user: str
    password: str
    database: str

    @property
    def dsn(self) -> str:
        return f"{self.user}@tcp({self.host}:{self.port})/{self.database}"


@dataclass(frozen=True)
class ScanConfig:
    """What to scan and how."""

    table: str
    concurrency: int = 2
    projection: str = "*"
    rowid_column: str = "_tidb_rowid"
    min_rowid: int | None = None
    max_rowid: int | None = None
    explain_analyze: bool = True
    interval: float = 1.0


def get_connection_config(args: argparse.Namespace) -> ConnectionConfig:
    """
    Resolve connection settings from arguments or environment variables.

    Raises:
        ConfigurationError: If the port is not a valid integer
    """
    port = args.port if args.port is not None else os.getenv("TIDB_PORT", "4000")
    try:
        port = int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port: {port!r}") from None

    return ConnectionConfig(
        host=args.host or os.getenv("TIDB_HOST", "127.0.0.1"),
        port=port,
        user=args.user or os.getenv("TIDB_USER", "root"),
        password=args.password if args.password is not None else os.getenv("TIDB_PASSWORD", ""),
        database=args.database or os.getenv("TIDB_DATABASE", "test"),
    )


def get_scan_config(args: argparse.Namespace) -> ScanConfig:
    """
    Validate scan options.

    Raises:
        ConfigurationError: If the table is missing, an identifier is invalid
            or a numeric option is out of range
        InvalidBoundsError: If --min-rowid is greater than --max-rowid
    """
    if not args.table:
        raise ConfigurationError("Please specify the table name using --table=<TABLE_NAME>")

    try:
        validate_schema_table(args.table)
        validate_identifier(args.rowid_column)
        validate_integer_param(args.concurrency, "concurrency", min_value=1)
        for name in ("min_rowid", "max_rowid"):
            if getattr(args, name) is not None:
                validate_integer_param(getattr(args, name), name)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    if not args.projection or not args.projection.strip():
        raise ConfigurationError("Projection clause cannot be empty")

    if (
        args.min_rowid is not None
        and args.max_rowid is not None
        and args.max_rowid < args.min_rowid
    ):
        raise InvalidBoundsError(
            f"--max-rowid ({args.max_rowid}) is smaller than --min-rowid ({args.min_rowid})"
        )

    return ScanConfig(
        table=args.table,
        concurrency=args.concurrency,
        projection=args.projection,
        rowid_column=args.rowid_column,
        min_rowid=args.min_rowid,
        max_rowid=args.max_rowid,
        explain_analyze=args.explain_analyze,
        interval=args.interval,
    )
