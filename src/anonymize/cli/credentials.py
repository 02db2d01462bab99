"""
Connection settings and logging setup for CLI.

This module resolves the database URL and rule file location from arguments
or environment variables, and configures logging for the CLI application.
"""

import argparse
import os

from utils.logging import configure_from_env

from ..config import CONFIG_ENV_VAR
from ..errors import ConfigurationError

DATABASE_URL_ENV_VAR = "DATABASE_URL"


def setup_logging(args: argparse.Namespace) -> None:
    """
    Setup logging configuration

    ``--log-level`` wins over ``LOG_LEVEL``; ``--quiet`` drops to ERROR unless
    a level was given explicitly.

    Args:
        args: Parsed command-line arguments
    """
    level = args.log_level
    if level is None and args.quiet:
        level = "ERROR"

    configure_from_env(level=level, json_format=True if args.log_json else None)


def get_database_url(args: argparse.Namespace) -> str:
    """
    Get the database URL from arguments or environment

    Raises:
        ConfigurationError: If neither provides one
    """
    url = args.database_url or os.getenv(DATABASE_URL_ENV_VAR)
    if not url:
        raise ConfigurationError(
            f"No database URL provided. Use --database-url or the {DATABASE_URL_ENV_VAR} env var"
        )
    return url


def get_config_path(args: argparse.Namespace) -> str | None:
    """Rule file from ``--config``, then ``ANONYMIZE_CONFIG``; None means the default."""
    return args.config or os.getenv(CONFIG_ENV_VAR)
