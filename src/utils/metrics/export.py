"""
Metrics for anonymized export runs.

Tracks exported tables, streamed rows and bytes, per-table durations and FK
cycle fallbacks.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class ExportMetrics:
    """
    Metrics for anonymized export operations

    Each instance registers its collectors on ``registry``; pass a fresh
    ``CollectorRegistry`` to keep instances independent (e.g. in tests).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize export metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.tables_total = Counter(
            "export_tables_total",
            "Total number of table exports by outcome",
            ["status"],
            registry=self.registry,
        )

        self.rows_total = Counter(
            "export_rows_total",
            "Total number of rows streamed to the sink",
            ["table_name"],
            registry=self.registry,
        )

        self.bytes_total = Counter(
            "export_bytes_total",
            "Total number of bytes streamed to the sink",
            ["table_name"],
            registry=self.registry,
        )

        self.table_duration_seconds = Histogram(
            "export_table_duration_seconds",
            "Duration of a single table export in seconds",
            ["table_name"],
            buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 300, 900, 3600),
            registry=self.registry,
        )

        self.dependency_cycles_total = Counter(
            "export_dependency_cycles_total",
            "Number of runs that fell back to alphabetical order due to FK cycles",
            registry=self.registry,
        )

        self.last_run_timestamp = Gauge(
            "export_last_run_timestamp",
            "Timestamp of the last completed export run",
            registry=self.registry,
        )

    def record_table(
        self,
        table_name: str,
        success: bool,
        duration: float,
        rows: int = 0,
        bytes_written: int = 0,
    ) -> None:
        """
        Record the outcome of one table export

        Args:
            table_name: Qualified table name
            success: Whether the table was fully exported
            duration: Duration in seconds
            rows: Rows streamed
            bytes_written: Bytes streamed (excluding framing)
        """
        status = "success" if success else "failed"
        self.tables_total.labels(status=status).inc()
        self.table_duration_seconds.labels(table_name=table_name).observe(duration)

        if rows:
            self.rows_total.labels(table_name=table_name).inc(rows)
        if bytes_written:
            self.bytes_total.labels(table_name=table_name).inc(bytes_written)

        logger.debug(
            f"Recorded export: table={table_name}, status={status}, "
            f"duration={duration:.2f}s, rows={rows}"
        )

    def record_cycle(self) -> None:
        """Record an alphabetical fallback caused by circular FKs"""
        self.dependency_cycles_total.inc()

    def record_run_complete(self) -> None:
        """Stamp the completion time of a successful run"""
        self.last_run_timestamp.set(time.time())
