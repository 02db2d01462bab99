"""
Bulk transfer channel.

Runs ``COPY (...) TO STDOUT`` on the shared session and hands the server's
data to a destination chunk by chunk as it arrives. Nothing is collected in
memory: at most one chunk is held at a time, and a slow sink slows the copy.
"""

import logging
from typing import Any, Protocol

from opentelemetry import trace

from utils.tracing import trace_operation

logger = logging.getLogger(__name__)


class ChunkDestination(Protocol):
    """Anything psycopg2 can write raw COPY bytes into."""

    def write(self, data: bytes) -> Any:
        ...


class PostgresBulkChannel:
    """COPY-out over a psycopg2 connection."""

    def __init__(self, connection: Any, chunk_size: int = 64 * 1024):
        self.connection = connection
        self.chunk_size = chunk_size

    def copy_out(self, sql: str, destination: ChunkDestination) -> None:
        """
        Stream the output of a COPY TO STDOUT statement into ``destination``.

        The destination must not be a text stream: psycopg2 then passes the
        rows through undecoded, exactly as the server encoded them.

        Raises:
            psycopg2.Error: On SQL errors or a dropped connection
            Exception: Whatever ``destination.write`` raises, unchanged
        """
        with trace_operation("copy_out", kind=trace.SpanKind.CLIENT, **{"db.operation": "COPY"}):
            with self.connection.cursor() as cursor:
                cursor.copy_expert(sql, destination, size=self.chunk_size)
