"""
Command-line interface for row bisection.

Usage:
    rowid-bisect --table orders --concurrency 8
"""

import sys

from utils.logging import get_logger, setup_logging, shutdown_logging

from .commands import EXIT_INTERRUPTED, bisect_table, cmd_run, open_pool
from .config import get_connection_config, get_scan_config
from .parser import create_parser

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the rowid-bisect CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
    )

    try:
        exit_code = cmd_run(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted, accumulated progress is lost")
        exit_code = EXIT_INTERRUPTED
    finally:
        shutdown_logging()

    sys.exit(exit_code)


__all__ = [
    "main",
    "cmd_run",
    "bisect_table",
    "open_pool",
    "create_parser",
    "get_connection_config",
    "get_scan_config",
]


if __name__ == "__main__":
    main()
