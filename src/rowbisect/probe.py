"""
Range probes against the target table.

A probe runs one query restricted to a row identifier range and reports
whether every row in it could be read without an engine error. Zero
result rows and database errors are both reported as FAULT.
"""

import enum
import logging
from typing import Any, Protocol

import pymysql
from opentelemetry import trace

from utils.sql_safety import quote_identifier, quote_schema_table
from utils.tracing import trace_operation

from .ranges import RowRange

logger = logging.getLogger(__name__)


class ProbeOutcome(enum.Enum):
    """Result of probing one range."""

    OK = "ok"
    FAULT = "fault"


class RangeProbe(Protocol):
    """Anything that can test a row identifier range."""

    def probe(self, row_range: RowRange) -> ProbeOutcome:
        ...


def build_probe_query(
    table: str,
    projection: str = "*",
    rowid_column: str = "_tidb_rowid",
    explain_analyze: bool = True,
) -> str:
    """
    Build the parameterized probe query for a table.

    Args:
        table: Table name, optionally schema-qualified
        projection: Projection clause selected by the probe
        rowid_column: Column holding the row identifier
        explain_analyze: Wrap the scan in EXPLAIN ANALYZE so the whole
            range is read by the engine instead of only the first row

    Returns:
        SQL text with two %s placeholders for the range bounds

    Raises:
        ValueError: If table or rowid_column are not valid identifiers,
            or projection is empty
    """
    if not projection or not projection.strip():
        raise ValueError("Projection clause cannot be empty")

    quoted_table = quote_schema_table(table)
    quoted_column = quote_identifier(rowid_column)

    query = (
        f"SELECT {projection} FROM {quoted_table} "
        f"WHERE {quoted_column} >= %s AND {quoted_column} < %s"
    )
    if explain_analyze:
        query = f"EXPLAIN ANALYZE {query}"
    return query


class SQLRangeProbe:
    """
    Probes ranges by querying the table through a shared connection pool.

    The pool is shared by every worker; each probe holds one connection
    only for the duration of its query.
    """

    def __init__(
        self,
        pool: Any,
        table: str,
        projection: str = "*",
        rowid_column: str = "_tidb_rowid",
        explain_analyze: bool = True,
    ):
        """
        Initialize the probe.

        Args:
            pool: Connection pool exposing an acquire() context manager
            table: Table to probe
            projection: Projection clause used in the probe query
            rowid_column: Row identifier column
            explain_analyze: Run the scan under EXPLAIN ANALYZE
        """
        self.pool = pool
        self.table = table
        self.projection = projection
        self.rowid_column = rowid_column
        self.query = build_probe_query(table, projection, rowid_column, explain_analyze)

    def probe(self, row_range: RowRange) -> ProbeOutcome:
        """
        Probe a single range.

        Args:
            row_range: Range to scan

        Returns:
            ProbeOutcome.OK if the first result row was read,
            ProbeOutcome.FAULT on zero rows or any database error
        """
        with trace_operation(
            "probe_range",
            kind=trace.SpanKind.CLIENT,
            table=self.table,
            min_row_id=row_range.min_row_id,
            max_row_id=row_range.max_row_id,
        ) as span:
            try:
                with self.pool.acquire() as conn:
                    with conn.cursor() as cursor:
                        cursor.execute(
                            self.query,
                            (row_range.min_row_id, row_range.max_row_id),
                        )
                        row = cursor.fetchone()
            except pymysql.Error as e:
                logger.warning(f"Probe of {row_range} failed: {type(e).__name__}: {e}")
                span.set_attribute("probe.outcome", ProbeOutcome.FAULT.value)
                return ProbeOutcome.FAULT

            outcome = ProbeOutcome.OK if row is not None else ProbeOutcome.FAULT
            if row is None:
                logger.debug(f"Probe of {row_range} returned no rows")
            span.set_attribute("probe.outcome", outcome.value)
            return outcome
