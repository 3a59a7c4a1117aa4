"""
Unit tests for utils.logging

Tests JSON and console formatting of bisection log records and
file/console handler configuration.
"""

import json
import logging
import logging.handlers
import sys
from unittest.mock import patch

import pytest

from utils.logging import (
    ConsoleFormatter,
    JSONFormatter,
    setup_logging,
    shutdown_logging,
)


def make_record(msg="+ Range[0, 10) - New", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="rowbisect.engine",
        level=level,
        pathname="/path/to/engine.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSONFormatter class"""

    def test_init_with_defaults(self):
        """Test initialization with default parameters"""
        formatter = JSONFormatter()

        assert formatter.include_timestamp is True
        assert formatter.include_hostname is True
        assert formatter.app_name == "rowid-bisect"
        assert formatter.hostname is not None

    def test_format_basic_log_record(self):
        """Test formatting a basic log record"""
        # Arrange
        formatter = JSONFormatter()
        record = make_record()

        # Act
        log_data = json.loads(formatter.format(record))

        # Assert
        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "rowbisect.engine"
        assert log_data["message"] == "+ Range[0, 10) - New"
        assert log_data["app"] == "rowid-bisect"
        assert "timestamp" in log_data
        assert "hostname" in log_data
        assert "context" not in log_data

    def test_format_without_timestamp_and_hostname(self):
        """Test optional fields can be disabled"""
        formatter = JSONFormatter(include_timestamp=False, include_hostname=False)

        log_data = json.loads(formatter.format(make_record()))

        assert "timestamp" not in log_data
        assert "hostname" not in log_data

    def test_format_with_range_context(self):
        """Test extra fields are emitted under context"""
        # Arrange
        formatter = JSONFormatter()
        record = make_record(event="ok", min_row_id=0, max_row_id=10, elapsed_seconds=0.25)

        # Act
        log_data = json.loads(formatter.format(record))

        # Assert
        assert log_data["context"] == {
            "event": "ok",
            "min_row_id": 0,
            "max_row_id": 10,
            "elapsed_seconds": 0.25,
        }

    def test_format_with_exception_info(self):
        """Test exception details are serialized"""
        formatter = JSONFormatter()
        try:
            raise ValueError("bad range")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        log_data = json.loads(formatter.format(record))

        assert log_data["exception"]["type"] == "ValueError"
        assert log_data["exception"]["message"] == "bad range"
        assert any("ValueError" in line for line in log_data["exception"]["traceback"])

    def test_format_non_serializable_context(self):
        """Test context values that JSON cannot encode fall back to str"""
        formatter = JSONFormatter()
        record = make_record(row_range=object())

        log_data = json.loads(formatter.format(record))

        assert log_data["context"]["row_range"].startswith("<object object")


class TestConsoleFormatter:
    """Test ConsoleFormatter class"""

    def test_init_without_colors(self):
        """Test initialization with colors disabled"""
        formatter = ConsoleFormatter(use_colors=False)
        assert formatter.use_colors is False

    def test_format_without_colors(self):
        """Test plain formatting includes level, thread and message"""
        formatter = ConsoleFormatter(use_colors=False)
        record = make_record(msg="+ All tasks are finished")

        result = formatter.format(record)

        assert "[INFO]" in result
        assert "MainThread" in result
        assert "+ All tasks are finished" in result

    @patch("sys.stderr.isatty", return_value=True)
    def test_format_with_colors_restores_levelname(self, mock_isatty):
        """Test colored output does not leak into the record"""
        formatter = ConsoleFormatter(use_colors=True)
        record = make_record(level=logging.WARNING)

        result = formatter.format(record)

        assert "\033[33m" in result
        assert record.levelname == "WARNING"

    def test_show_context(self):
        """Test context fields are appended when requested"""
        formatter = ConsoleFormatter(use_colors=False, show_context=True)
        record = make_record(event="broken_row", row_id=42)

        result = formatter.format(record)

        assert "event=broken_row" in result
        assert "row_id=42" in result

    def test_context_hidden_by_default(self):
        """Test context fields are not appended by default"""
        formatter = ConsoleFormatter(use_colors=False)

        result = formatter.format(make_record(row_id=42))

        assert "row_id=42" not in result


class TestSetupLogging:
    """Test setup_logging function"""

    @pytest.fixture(autouse=True)
    def close_handlers(self):
        yield
        for handler in logging.getLogger().handlers[:]:
            handler.close()

    def test_setup_logging_with_defaults(self):
        """Test setup with default parameters"""
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, ConsoleFormatter)

    @pytest.mark.parametrize("level,expected", [
        ("DEBUG", logging.DEBUG),
        ("warning", logging.WARNING),
        ("INVALID", logging.INFO),
    ])
    def test_setup_logging_levels(self, level, expected):
        """Test level names are resolved, with INFO as fallback"""
        setup_logging(level=level)
        assert logging.getLogger().level == expected

    def test_setup_logging_with_json_file(self, tmp_path):
        """Test file logging with JSON formatting creates the directory"""
        log_file = tmp_path / "logs" / "bisect.log"

        setup_logging(log_file=str(log_file), json_format=True, console_output=False)
        logging.getLogger("rowbisect.test").info("hello", extra={"row_id": 7})
        for handler in logging.getLogger().handlers:
            handler.flush()

        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.handlers.RotatingFileHandler)
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

        lines = log_file.read_text().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "hello"
        assert entry["context"]["row_id"] == 7

    def test_setup_logging_clears_existing_handlers(self):
        """Test that existing handlers are replaced"""
        root_logger = logging.getLogger()
        root_logger.addHandler(logging.StreamHandler())

        setup_logging(console_output=True)

        assert len(root_logger.handlers) == 1

    def test_setup_logging_quiets_driver_loggers(self):
        """Test driver loggers are raised to WARNING"""
        setup_logging(level="DEBUG")
        assert logging.getLogger("pymysql").level == logging.WARNING

    @patch("logging.shutdown")
    def test_shutdown_logging_removes_handlers(self, mock_shutdown, tmp_path):
        """Test shutdown flushes and removes every root handler"""
        setup_logging(log_file=str(tmp_path / "x.log"))

        shutdown_logging()

        assert logging.getLogger().handlers == []
        mock_shutdown.assert_called_once()
