"""
Streaming export executor.

Exports the tables of an :class:`ExportPlan` one after another over a single
session. For each table it compiles the anonymizing projection, writes a COPY
framing header, streams the server's COPY output straight into the sink and
closes the block with the ``\\.`` terminator. The result replays with ``psql``
into a database that already has the schema.

The run is all-or-nothing: the first failure stops it, later tables are never
attempted, and whatever was already written stays in the sink.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, BinaryIO, Protocol

import psycopg2

from utils.logging import ContextLogger
from utils.metrics import ExportMetrics
from utils.sql_safety import quote_literal
from utils.tracing import add_span_attributes, trace_operation

from . import __version__
from .compiler import COPY_TERMINATOR, build_anonymized_select, build_copy_header, build_copy_out
from .dependency import ExportPlan
from .errors import AnonymizeError, ExportError, SinkError
from .rules import RuleIndex
from .tables import TableRef

logger = ContextLogger(__name__)

ProgressCallback = Callable[[TableRef, int], None]


class ColumnSource(Protocol):
    def list_columns(self, table: TableRef) -> list[str]:
        ...


class BulkChannel(Protocol):
    def copy_out(self, sql: str, destination: Any) -> None:
        ...


class ExportState(Enum):
    NOT_STARTED = "not_started"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TableExport:
    """Outcome of one exported table."""

    table: TableRef
    rows: int
    bytes_written: int
    duration: float


@dataclass
class ExportSummary:
    tables: list[TableExport] = field(default_factory=list)
    cycle_detected: bool = False
    duration: float = 0.0

    @property
    def total_rows(self) -> int:
        return sum(t.rows for t in self.tables)

    @property
    def total_bytes(self) -> int:
        return sum(t.bytes_written for t in self.tables)


class _SinkWriter:
    """
    Destination handed to the bulk channel for one table.

    Forwards each COPY chunk to the sink as soon as it arrives. COPY text
    format escapes embedded newlines, so every b"\\n" ends exactly one row.
    """

    def __init__(self, sink: BinaryIO, table: TableRef):
        self._sink = sink
        self._table = table
        self.rows = 0
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        try:
            self._sink.write(data)
        except (OSError, ValueError) as e:
            raise SinkError(f"Failed to write export data: {e}", table=self._table.qualified) from e

        self.bytes_written += len(data)
        self.rows += data.count(b"\n")
        return len(data)


class ExportExecutor:
    """
    Drives an anonymized dump to completion or to its first failure.

    State moves NOT_STARTED -> EXPORTING (one table at a time) -> DONE, or
    to FAILED from any point after start. An executor runs once.
    """

    def __init__(
        self,
        introspector: ColumnSource,
        channel: BulkChannel,
        rule_index: RuleIndex,
        seed: str,
        sink: BinaryIO,
        progress: ProgressCallback | None = None,
        metrics: ExportMetrics | None = None,
        client_encoding: str | None = None,
    ):
        """
        Args:
            introspector: Source of each table's column list
            channel: Bulk export channel on the shared session
            rule_index: Column strategies; read only
            seed: Seed for the deterministic fakers
            sink: Binary output stream, owned by the executor for the run
            progress: Called with (table, rows) after each table, never writes to the sink
            metrics: Optional Prometheus metrics
            client_encoding: Encoding of the COPY data, recorded in the preamble
        """
        self.introspector = introspector
        self.channel = channel
        self.rule_index = rule_index
        self.seed = seed
        self.sink = sink
        self.progress = progress
        self.metrics = metrics
        self.client_encoding = client_encoding

        self.state = ExportState.NOT_STARTED
        self.current_table: TableRef | None = None

    def execute(self, plan: ExportPlan) -> ExportSummary:
        """
        Export every table of ``plan`` in order.

        Raises:
            IntrospectionError: If a table's columns cannot be read
            ExportError: If a table's COPY fails
            SinkError: If the sink cannot be written
            RuntimeError: If this executor has already run
        """
        if self.state is not ExportState.NOT_STARTED:
            raise RuntimeError(f"Export executor already used (state: {self.state.value})")

        summary = ExportSummary(cycle_detected=plan.cycle_detected)
        if plan.cycle_detected and self.metrics:
            self.metrics.record_cycle()
        started = time.monotonic()

        try:
            with trace_operation("anonymize.export", tables=len(plan)):
                self._write_text(self._preamble(), table=None)

                for table in plan:
                    self.state = ExportState.EXPORTING
                    self.current_table = table
                    summary.tables.append(self._export_table(table))

                self._flush()

            self.state = ExportState.DONE
            self.current_table = None
        finally:
            if self.state is not ExportState.DONE:
                self.state = ExportState.FAILED

        summary.duration = time.monotonic() - started
        if self.metrics:
            self.metrics.record_run_complete()

        logger.info(
            f"Exported {len(summary.tables)} tables",
            rows=summary.total_rows,
            bytes=summary.total_bytes,
            duration_s=round(summary.duration, 3),
        )
        return summary

    def _export_table(self, table: TableRef) -> TableExport:
        table_logger = logger.bind(table_name=table.qualified)
        started = time.monotonic()
        writer = _SinkWriter(self.sink, table)

        with trace_operation("anonymize.export_table", table=table.qualified):
            try:
                columns = self.introspector.list_columns(table)
                select_sql = build_anonymized_select(table, columns, self.rule_index, self.seed)
                table_logger.debug(f"Projection: {select_sql}")

                self._write_text(build_copy_header(table, columns), table)
                try:
                    self.channel.copy_out(build_copy_out(select_sql), writer)
                except psycopg2.Error as e:
                    raise ExportError(f"COPY failed: {e}", table=table.qualified) from e
                self._write_text(COPY_TERMINATOR, table)
            except AnonymizeError:
                self._record(table, False, time.monotonic() - started, writer)
                raise

            duration = time.monotonic() - started
            add_span_attributes(rows=writer.rows, bytes=writer.bytes_written)

        self._record(table, True, duration, writer)
        table_logger.info("Table exported", rows=writer.rows, duration_s=round(duration, 3))

        if self.progress:
            self.progress(table, writer.rows)

        return TableExport(table, writer.rows, writer.bytes_written, duration)

    def _record(self, table: TableRef, success: bool, duration: float, writer: _SinkWriter) -> None:
        if self.metrics:
            self.metrics.record_table(
                table.qualified, success, duration, writer.rows, writer.bytes_written
            )

    def _preamble(self) -> str:
        lines = [
            "-- anonymized dump",
            f"-- Generated: {datetime.now(UTC).isoformat()}",
            f"-- pg-anonymize version: {__version__}",
            "--",
            "",
        ]
        if self.client_encoding:
            lines.append(f"SET client_encoding = {quote_literal(self.client_encoding)};")
            lines.append("")
        return "\n".join(lines) + "\n"

    def _write_text(self, text: str, table: TableRef | None) -> None:
        try:
            self.sink.write(text.encode("utf-8"))
        except (OSError, ValueError) as e:
            raise SinkError(
                f"Failed to write to output: {e}", table=table.qualified if table else None
            ) from e

    def _flush(self) -> None:
        try:
            self.sink.flush()
        except (OSError, ValueError) as e:
            raise SinkError(f"Failed to flush output: {e}") from e
