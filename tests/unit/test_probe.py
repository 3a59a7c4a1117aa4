"""
Unit tests for SQL range probes.

The connection pool, connection and cursor are mocked; no database is
contacted.
"""

from unittest.mock import MagicMock

import pymysql
import pytest

from rowbisect.probe import ProbeOutcome, SQLRangeProbe, build_probe_query
from rowbisect.ranges import RowRange


def make_pool(cursor):
    """Mock pool whose acquire() yields a connection handing out cursor."""
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    pool = MagicMock()
    pool.acquire.return_value.__enter__.return_value = conn
    return pool


class TestBuildProbeQuery:
    """Test probe query construction."""

    def test_default_query(self):
        query = build_probe_query("orders")
        assert query == (
            "EXPLAIN ANALYZE SELECT * FROM `orders` "
            "WHERE `_tidb_rowid` >= %s AND `_tidb_rowid` < %s"
        )

    def test_plain_select(self):
        query = build_probe_query("orders", explain_analyze=False)
        assert query.startswith("SELECT * FROM `orders`")

    def test_custom_projection_and_column(self):
        query = build_probe_query("shop.orders", projection="id, payload", rowid_column="id")
        assert "SELECT id, payload FROM `shop`.`orders`" in query
        assert "WHERE `id` >= %s AND `id` < %s" in query

    @pytest.mark.parametrize("projection", ["", "   "])
    def test_empty_projection_rejected(self, projection):
        with pytest.raises(ValueError, match="Projection"):
            build_probe_query("orders", projection=projection)

    @pytest.mark.parametrize("table", ["orders; DROP TABLE x", "or`ders", "1orders"])
    def test_invalid_table_rejected(self, table):
        with pytest.raises(ValueError):
            build_probe_query(table)

    def test_invalid_rowid_column_rejected(self):
        with pytest.raises(ValueError):
            build_probe_query("orders", rowid_column="id--")


class TestSQLRangeProbe:
    """Test SQLRangeProbe.probe."""

    def test_ok_when_first_row_read(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = ("TableReader_5", "10.00", "10")
        probe = SQLRangeProbe(make_pool(cursor), "orders")

        assert probe.probe(RowRange(0, 100)) is ProbeOutcome.OK
        cursor.execute.assert_called_once_with(probe.query, (0, 100))

    def test_fault_when_no_rows(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = None
        probe = SQLRangeProbe(make_pool(cursor), "orders")

        assert probe.probe(RowRange(0, 100)) is ProbeOutcome.FAULT

    def test_fault_on_database_error(self, caplog):
        cursor = MagicMock()
        cursor.execute.side_effect = pymysql.err.InternalError(1105, "corrupted row")
        probe = SQLRangeProbe(make_pool(cursor), "orders")

        assert probe.probe(RowRange(5, 6)) is ProbeOutcome.FAULT
        assert "Range[5, 6)" in caplog.text
        assert "InternalError" in caplog.text

    def test_fault_on_lost_connection(self):
        cursor = MagicMock()
        cursor.fetchone.side_effect = pymysql.err.OperationalError(2013, "Lost connection")
        probe = SQLRangeProbe(make_pool(cursor), "orders")

        assert probe.probe(RowRange(0, 2)) is ProbeOutcome.FAULT

    def test_non_database_error_propagates(self):
        pool = MagicMock()
        pool.acquire.side_effect = RuntimeError("pool closed")
        probe = SQLRangeProbe(pool, "orders")

        with pytest.raises(RuntimeError, match="pool closed"):
            probe.probe(RowRange(0, 2))

    def test_connection_released_per_probe(self):
        cursor = MagicMock()
        cursor.fetchone.return_value = (1,)
        pool = make_pool(cursor)
        probe = SQLRangeProbe(pool, "orders")

        probe.probe(RowRange(0, 2))
        probe.probe(RowRange(2, 4))

        assert pool.acquire.call_count == 2
        assert pool.acquire.return_value.__exit__.call_count == 2

    def test_query_uses_configuration(self):
        probe = SQLRangeProbe(
            MagicMock(), "orders",
            projection="id",
            rowid_column="id",
            explain_analyze=False,
        )
        assert probe.query == "SELECT id FROM `orders` WHERE `id` >= %s AND `id` < %s"
