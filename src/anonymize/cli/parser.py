"""
Command-line argument parser configuration.

This module sets up the argument parser for the pg-anonymize CLI tool,
defining all commands and their options.
"""

import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="pg-anonymize",
        description="Anonymized, FK-ordered data dumps of PostgreSQL databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Install the transform functions (once per database)
  pg-anonymize --database-url postgres://localhost/app setup

  # Dump to a file using the rules in ./anonymize.toml
  pg-anonymize --database-url postgres://localhost/app dump --seed s1 -o app.sql

  # Stream to stdout and load into another database
  pg-anonymize dump --seed s1 | psql postgres://localhost/app_dev

  # Preview which columns each rule touches
  pg-anonymize dump --dry-run

  # Custom rule file, JSON logs and Prometheus metrics
  pg-anonymize --config rules/staging.toml --log-json --metrics-port 9091 dump -o out.sql
        """
    )

    parser.add_argument(
        '--database-url',
        help='PostgreSQL connection URL (default: $DATABASE_URL)'
    )
    parser.add_argument(
        '--config',
        help='Rule file path (default: $ANONYMIZE_CONFIG or ./anonymize.toml)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: $LOG_LEVEL or INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON lines'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress progress output and warnings'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    parser.add_argument(
        '--trace-console',
        action='store_true',
        help='Print OpenTelemetry spans to stderr'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Setup command ==========
    subparsers.add_parser(
        'setup',
        help='Create the anonymize schema and install the transform functions'
    )

    # ========== Dump command ==========
    dump_parser = subparsers.add_parser('dump', help='Write an anonymized data dump')
    dump_parser.add_argument(
        '--seed',
        help='Seed for deterministic fake values (default: $ANONYMIZE_SEED or rule file)'
    )
    dump_parser.add_argument(
        '-o', '--output',
        default='-',
        help='Output file, "-" for stdout (default: -)'
    )
    dump_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show tables, row counts and column strategies without dumping'
    )

    return parser
