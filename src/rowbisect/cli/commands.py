"""
CLI command implementation.

Wires configuration, the connection pool, bounds discovery, the
bisection engine and the progress monitor into one run.
"""

import argparse
import logging
import time

import pymysql

from utils.db_pool import ConnectionPoolError, MySQLConnectionPool
from utils.metrics import ApplicationInfo, MetricsPublisher
from utils.retry import retry_database_operation
from utils.tracing import initialize_tracing, shutdown_tracing

from .. import __version__
from ..bounds import fetch_rowid_bounds, resolve_initial_range
from ..engine import BisectionEngine
from ..exceptions import RowBisectError
from ..monitor import ProgressMonitor
from ..probe import SQLRangeProbe
from ..progress import ProgressTracker
from ..report import export_report_json, format_report_console, generate_report
from ..scheduler import TaskScheduler
from .config import ConnectionConfig, ScanConfig, get_connection_config, get_scan_config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

STARTUP_ERRORS = (RowBisectError, ConnectionPoolError, pymysql.Error, RuntimeError)


class RunLogAdapter(logging.LoggerAdapter):
    """Adds the run's fields to every record; per-call extra fields win."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def open_pool(conn_config: ConnectionConfig, concurrency: int, retries: int) -> MySQLConnectionPool:
    """
    Open the connection pool shared by all probe workers.

    One connection per worker plus one spare for bounds discovery.
    """
    logger.info(f"+ Connecting to {conn_config.dsn}")

    @retry_database_operation(max_retries=retries)
    def connect() -> MySQLConnectionPool:
        return MySQLConnectionPool(
            host=conn_config.host,
            port=conn_config.port,
            user=conn_config.user,
            password=conn_config.password,
            database=conn_config.database,
            min_size=1,
            max_size=concurrency + 1,
            pool_name="rowbisect",
        )

    return connect()


def bisect_table(pool, scan: ScanConfig) -> dict:
    """
    Run one bisection over a table and return its report.

    Raises:
        EmptyTableError: If the table has no rows
        InvalidBoundsError: If the discovered or requested bounds are inverted
    """
    run_logger = RunLogAdapter(logger, {"table": scan.table})

    min_row_id, max_row_id = fetch_rowid_bounds(pool, scan.table, scan.rowid_column)
    initial_range = resolve_initial_range(
        min_row_id, max_row_id, scan.min_rowid, scan.max_rowid
    )
    run_logger.info(
        f"Bisecting {scan.table} over {initial_range}",
        extra={"concurrency": scan.concurrency, "width": initial_range.width},
    )

    probe = SQLRangeProbe(
        pool,
        scan.table,
        projection=scan.projection,
        rowid_column=scan.rowid_column,
        explain_analyze=scan.explain_analyze,
    )
    tracker = ProgressTracker()
    started = time.monotonic()

    with TaskScheduler(scan.concurrency) as scheduler:
        engine = BisectionEngine(probe, scheduler, tracker)
        engine.start(initial_range)
        snapshot = ProgressMonitor(tracker, interval=scan.interval).run()

    broken_row_ids = tracker.broken_row_ids()
    run_logger.info(
        f"Bisection of {scan.table} complete: {snapshot.broken} broken rows",
        extra={"finished": snapshot.finished, "broken": snapshot.broken},
    )

    return generate_report(
        table=scan.table,
        initial_range=initial_range,
        snapshot=snapshot,
        broken_row_ids=broken_row_ids,
        concurrency=scan.concurrency,
        duration_seconds=time.monotonic() - started,
        rowid_column=scan.rowid_column,
    )


def cmd_run(args: argparse.Namespace) -> int:
    """
    Execute a bisection run.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code: 0 once every range is resolved (whether or not
        broken rows were found), 1 on a configuration or startup failure
    """
    try:
        scan = get_scan_config(args)
        conn_config = get_connection_config(args)
    except RowBisectError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    if args.otlp_endpoint:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    pool = None
    publisher = MetricsPublisher(port=args.metrics_port) if args.metrics_port else None
    try:
        if publisher is not None:
            publisher.start()
            ApplicationInfo(version=__version__, table=scan.table)

        pool = open_pool(conn_config, scan.concurrency, args.connect_retries)
        report = bisect_table(pool, scan)
    except STARTUP_ERRORS as e:
        logger.error(f"Bisection failed to start: {type(e).__name__}: {e}")
        return EXIT_FAILURE
    finally:
        if pool is not None:
            logger.debug(f"Connection pool stats: {pool.get_stats()}")
            pool.close()
        if publisher is not None:
            publisher.stop()
        shutdown_tracing()

    print(format_report_console(report))
    if args.output:
        export_report_json(report, args.output)
        logger.info(f"Report saved to {args.output}")

    return EXIT_OK
