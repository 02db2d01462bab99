"""
Structured logging configuration

Provides JSON-formatted or colored console logging with contextual fields.

Usage:
    from utils.logging import setup_logging, get_logger

    setup_logging(level="INFO", json_format=True)

    logger = get_logger(__name__)
    logger.info("Table exported", extra={"table_name": "public.users", "rows": 1000})
"""

from .config import configure_from_env, get_logger, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
