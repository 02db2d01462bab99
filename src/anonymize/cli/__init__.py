"""
Command-line interface for anonymized dumps.

This module provides a CLI for installing the server-side transform
functions and writing anonymized, FK-ordered dumps of a PostgreSQL database.

Available commands:
- setup: Install the transform functions
- dump: Write an anonymized dump or a dry-run preview
"""

import logging
import os
import sys

from utils.metrics import MetricsPublisher
from utils.tracing import initialize_tracing, shutdown_tracing

from ..errors import AnonymizeError
from .commands import cmd_dump, cmd_setup
from .credentials import get_config_path, get_database_url, setup_logging
from .parser import create_parser

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the pg-anonymize CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Setup logging
    setup_logging(args)

    if args.trace_console or os.getenv("OTLP_ENDPOINT"):
        initialize_tracing(console_export=args.trace_console)

    publisher = MetricsPublisher(port=args.metrics_port) if args.metrics_port else None
    try:
        if publisher:
            try:
                publisher.start()
            except RuntimeError as e:
                logger.error(str(e))
                return 1

        # Execute command
        if args.command == 'setup':
            return cmd_setup(args)
        return cmd_dump(args)
    except AnonymizeError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    finally:
        if publisher:
            publisher.stop()
        shutdown_tracing()


def run() -> None:
    """Console script entry point"""
    sys.exit(main())


__all__ = [
    'main',
    'run',
    'setup_logging',
    'get_database_url',
    'get_config_path',
    'cmd_setup',
    'cmd_dump',
    'create_parser',
]


if __name__ == '__main__':
    run()
