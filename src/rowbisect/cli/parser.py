"""
Command-line argument parser configuration.

Defines every option of the rowid-bisect command.
"""

import argparse


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer, got {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Connection options fall back to TIDB_* environment variables when
    they are not given on the command line.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="rowid-bisect",
        description=(
            "Locate rows that make a TiDB/MySQL table scan fail by bisecting "
            "the row identifier space with concurrent range probes"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a table with the default settings (127.0.0.1:4000, database test)
  rowid-bisect --table orders

  # Scan with 16 concurrent probes and only read two columns
  rowid-bisect --table orders --concurrency 16 --projection "id, payload"

  # Restrict the scan to part of the row id space and save a report
  rowid-bisect --table orders --min-rowid 1000000 --max-rowid 2000000 --output report.json

  # Structured logs and Prometheus metrics
  rowid-bisect --table orders --log-json --metrics-port 9091
        """,
    )

    conn = parser.add_argument_group("connection")
    conn.add_argument("--host", help="Server host (default: $TIDB_HOST or 127.0.0.1)")
    conn.add_argument("--port", type=int, help="Server port (default: $TIDB_PORT or 4000)")
    conn.add_argument("--user", help="Username (default: $TIDB_USER or root)")
    conn.add_argument(
        "--password", "--pass",
        dest="password",
        help="Password (default: $TIDB_PASSWORD or empty)",
    )
    conn.add_argument("--db", dest="database", help="Database name (default: $TIDB_DATABASE or test)")
    conn.add_argument(
        "--connect-retries",
        type=_non_negative_int,
        default=3,
        help="Retries for transient errors while connecting (default: 3)",
    )

    scan = parser.add_argument_group("scan")
    scan.add_argument("--table", help="Table name to scan (required)")
    scan.add_argument(
        "--concurrency",
        type=_positive_int,
        default=2,
        help="Number of concurrent range probes (default: 2)",
    )
    scan.add_argument(
        "--projection",
        default="*",
        help='Projection clause used when scanning (default: "*")',
    )
    scan.add_argument(
        "--rowid-column",
        default="_tidb_rowid",
        help="Row identifier column (default: _tidb_rowid)",
    )
    scan.add_argument(
        "--min-rowid",
        type=_non_negative_int,
        help="Inclusive lower row id bound (default: MIN of the column)",
    )
    scan.add_argument(
        "--max-rowid",
        type=_non_negative_int,
        help="Inclusive upper row id bound (default: MAX of the column)",
    )
    scan.add_argument(
        "--no-explain-analyze",
        dest="explain_analyze",
        action="store_false",
        help="Probe with a plain SELECT instead of EXPLAIN ANALYZE SELECT",
    )
    scan.add_argument(
        "--interval",
        type=_positive_float,
        default=1.0,
        help="Seconds between progress statistics lines (default: 1.0)",
    )

    output = parser.add_argument_group("output")
    output.add_argument("--output", help="Write a JSON report of broken rows to this path")
    output.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    output.add_argument("--log-json", action="store_true", help="Emit JSON log lines")
    output.add_argument("--log-file", help="Also write logs to this rotating file")
    output.add_argument(
        "--metrics-port",
        type=_positive_int,
        help="Expose Prometheus metrics on this port",
    )
    output.add_argument(
        "--otlp-endpoint",
        help="Export OpenTelemetry spans to this OTLP gRPC endpoint",
    )

    return parser
