"""PostgreSQL connection factory."""

import logging

import psycopg2
import psycopg2.extensions
from opentelemetry import trace

from utils.tracing import trace_operation

from .errors import ConfigurationError, IntrospectionError

logger = logging.getLogger(__name__)


def connect(
    database_url: str,
    readonly: bool = False,
    connect_timeout: int = 10,
) -> psycopg2.extensions.connection:
    """
    Open a PostgreSQL connection.

    A read-only connection runs in a single REPEATABLE READ transaction, so
    every table of a dump sees the same snapshot of the database.

    Args:
        database_url: libpq connection URI or keyword/value string
        readonly: Open a read-only snapshot session for dumping
        connect_timeout: Connection timeout in seconds

    Raises:
        ConfigurationError: If no URL is given
        IntrospectionError: If the server cannot be reached
    """
    if not database_url:
        raise ConfigurationError(
            "No database URL provided. Use --database-url or the DATABASE_URL env var"
        )

    with trace_operation("postgres_connect", kind=trace.SpanKind.CLIENT, readonly=readonly):
        try:
            conn = psycopg2.connect(database_url, connect_timeout=connect_timeout)
        except psycopg2.Error as e:
            raise IntrospectionError(f"Could not connect to database: {e}") from e

        if readonly:
            conn.set_session(
                isolation_level=psycopg2.extensions.ISOLATION_LEVEL_REPEATABLE_READ,
                readonly=True,
            )

    logger.debug(f"Connected to {conn.info.dbname} on {conn.info.host}:{conn.info.port}")
    return conn
