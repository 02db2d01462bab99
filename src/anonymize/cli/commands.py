"""
CLI command implementations.

This module contains the implementation of the two CLI commands:
- setup: Install the server-side transform functions
- dump: Anonymized export (or dry-run preview) of every resolved table
"""

import argparse
import logging
import sys
from contextlib import ExitStack
from typing import BinaryIO

from utils.metrics import ExportMetrics

from ..channel import PostgresBulkChannel
from ..config import load_config, resolve_seed, url_matches_production_patterns
from ..connection import connect
from ..dependency import order_tables
from ..errors import SetupError, SinkError
from ..executor import ExportExecutor
from ..functions import FUNCTION_SCHEMA, install_functions
from ..introspect import SchemaIntrospector
from ..preview import build_preview, format_number
from ..tables import TableRef, resolve_tables
from .credentials import get_config_path, get_database_url

logger = logging.getLogger(__name__)


def cmd_setup(args: argparse.Namespace) -> int:
    """
    Install the transform functions

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    database_url = get_database_url(args)
    conn = connect(database_url)
    try:
        installed = install_functions(conn)
    finally:
        conn.close()

    if not args.quiet:
        print(f"Installed {len(installed)} functions in schema {FUNCTION_SCHEMA}", file=sys.stderr)
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """
    Write an anonymized dump, or print the dry-run preview

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    config = load_config(get_config_path(args))
    seed = resolve_seed(args.seed, config)
    rule_index = config.rule_index()
    database_url = get_database_url(args)

    if not args.quiet and url_matches_production_patterns(database_url, config.production_patterns):
        logger.warning("Database URL matches production patterns")

    conn = connect(database_url, readonly=True)
    try:
        introspector = SchemaIntrospector(conn)
        if not introspector.functions_installed():
            raise SetupError(
                f"Transform functions not found in schema {FUNCTION_SCHEMA}. "
                f"Run 'pg-anonymize setup' first"
            )

        tables = resolve_tables(introspector.list_tables(), rule_index)
        logger.info(f"Resolved {len(tables)} tables for export")

        if args.dry_run:
            preview = build_preview(introspector, tables, rule_index, seed)
            if not args.quiet:
                sys.stdout.write(preview.render())
            return 0

        plan = order_tables(tables, introspector.list_foreign_keys())
        metrics = ExportMetrics() if args.metrics_port else None

        with ExitStack() as stack:
            sink = _open_sink(args.output, stack)
            executor = ExportExecutor(
                introspector=introspector,
                channel=PostgresBulkChannel(conn),
                rule_index=rule_index,
                seed=seed,
                sink=sink,
                progress=None if args.quiet else _print_progress,
                metrics=metrics,
                client_encoding=conn.info.parameter_status("client_encoding"),
            )
            summary = executor.execute(plan)
    finally:
        conn.close()

    if not args.quiet:
        destination = "stdout" if _is_stdout(args.output) else args.output
        print(
            f"Dumped {len(summary.tables)} tables ({format_number(summary.total_rows)} rows) "
            f"to {destination} in {summary.duration:.1f}s",
            file=sys.stderr,
        )
    return 0


def _is_stdout(output: str | None) -> bool:
    return output is None or output == "-"


def _open_sink(output: str | None, stack: ExitStack) -> BinaryIO:
    if _is_stdout(output):
        return sys.stdout.buffer

    try:
        return stack.enter_context(open(output, "wb"))
    except OSError as e:
        raise SinkError(f"Cannot open output file {output}: {e}") from e


def _print_progress(table: TableRef, rows: int) -> None:
    print(f"  {table}: {format_number(rows)} rows", file=sys.stderr)
