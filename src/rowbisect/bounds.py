"""
Startup discovery of the row identifier space.

Reads MIN and MAX of the row identifier column once before any work is
submitted and turns them into the initial range of the run.
"""

import logging
from typing import Any

from utils.retry import retry_database_operation
from utils.sql_safety import quote_identifier, quote_schema_table
from utils.tracing import add_span_attributes, add_span_event, trace_function

from .exceptions import EmptyTableError, InvalidBoundsError
from .ranges import RowRange, from_inclusive_bounds

logger = logging.getLogger(__name__)


@retry_database_operation(max_retries=3, base_delay=1.0)
def _query_bounds(pool: Any, query: str) -> tuple | None:
    with pool.acquire() as conn:
        with conn.cursor() as cursor:
            cursor.execute(query)
            return cursor.fetchone()


@trace_function("fetch_rowid_bounds", component="startup")
def fetch_rowid_bounds(
    pool: Any,
    table: str,
    rowid_column: str = "_tidb_rowid",
) -> tuple[int, int]:
    """
    Read the inclusive minimum and maximum row identifiers of a table.

    Transient connection errors are retried with backoff; anything else
    propagates to the caller.

    Args:
        pool: Connection pool exposing an acquire() context manager
        table: Table name, optionally schema-qualified
        rowid_column: Row identifier column

    Returns:
        Tuple of (min_row_id, max_row_id)

    Raises:
        EmptyTableError: If the table has no rows
        InvalidBoundsError: If MAX is smaller than MIN
    """
    quoted_table = quote_schema_table(table)
    quoted_column = quote_identifier(rowid_column)
    query = f"SELECT MIN({quoted_column}), MAX({quoted_column}) FROM {quoted_table}"

    add_span_attributes(table=table, rowid_column=rowid_column)
    logger.info(f"+ Reading MIN/MAX({rowid_column}) of {table}")
    row = _query_bounds(pool, query)

    if row is None or row[0] is None or row[1] is None:
        raise EmptyTableError(f"Table {table} has no rows to scan")

    min_row_id, max_row_id = int(row[0]), int(row[1])
    add_span_event("rowid_bounds", min_row_id=min_row_id, max_row_id=max_row_id)
    logger.info(f"  - MIN({table}.{rowid_column}) = {min_row_id}")
    logger.info(f"  - MAX({table}.{rowid_column}) = {max_row_id}")

    if max_row_id < min_row_id:
        raise InvalidBoundsError(
            f"Unexpected bounds for {table}: MAX({rowid_column})={max_row_id} "
            f"is smaller than MIN({rowid_column})={min_row_id}"
        )

    return min_row_id, max_row_id


def resolve_initial_range(
    min_row_id: int,
    max_row_id: int,
    min_override: int | None = None,
    max_override: int | None = None,
) -> RowRange:
    """
    Build the initial range of a run from the table bounds.

    Args:
        min_row_id: Inclusive minimum row id found in the table
        max_row_id: Inclusive maximum row id found in the table
        min_override: Operator-supplied inclusive lower bound
        max_override: Operator-supplied inclusive upper bound

    Returns:
        RowRange [min, max + 1) after applying overrides

    Raises:
        InvalidBoundsError: If the resulting bounds are inverted
    """
    low = min_row_id if min_override is None else min_override
    high = max_row_id if max_override is None else max_override

    if min_override is not None or max_override is not None:
        logger.info(f"Scan restricted to row ids [{low}, {high}]")

    return from_inclusive_bounds(low, high)
