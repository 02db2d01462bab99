"""
Dry-run preview.

Shows what a dump would do without exporting anything: every table with its
row count and the strategy each column resolves to, the skipped tables, and
how many columns would be written out unchanged.
"""

import logging
from dataclasses import dataclass, field

from .rules import RuleIndex, Strategy
from .tables import TableRef

logger = logging.getLogger(__name__)

RULE_WIDTH = 53


def format_number(n: int) -> str:
    """Format an integer with thousands separators, e.g. 1234567 -> 1,234,567."""
    return f"{n:,}"


def mask_seed(seed: str) -> str:
    """Hide a seed for display, keeping a short prefix of long seeds."""
    if len(seed) > 10:
        return f"{seed[:8]}... (hidden)"
    return "*** (hidden)"


@dataclass
class TablePreview:
    table: TableRef
    row_count: int
    columns: list[tuple[str, Strategy]]


@dataclass
class DryRunPreview:
    """Everything the preview report shows."""

    seed: str
    tables: list[TablePreview] = field(default_factory=list)
    skipped_tables: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return sum(t.row_count for t in self.tables)

    @property
    def preserved_columns(self) -> list[str]:
        """Qualified names of columns that keep their real values."""
        return [
            f"{t.table.qualified}.{column}"
            for t in self.tables
            for column, strategy in t.columns
            if strategy is Strategy.PRESERVE
        ]

    def render(self) -> str:
        lines = [
            "Anonymization Preview",
            "─" * RULE_WIDTH,
            "",
            "Config:",
            f"  Seed: {mask_seed(self.seed)}",
            "",
        ]

        for preview in self.tables:
            lines.append(f"Table: {preview.table} ({format_number(preview.row_count)} rows)")
            for column, strategy in preview.columns:
                lines.append(f"  {column:<16} {strategy.value}")
            lines.append("")

        if self.skipped_tables:
            lines.append("Skipped tables:")
            lines.extend(f"  - {name}" for name in self.skipped_tables)
            lines.append("")

        lines.append(
            f"Summary: {len(self.tables)} tables ({format_number(self.total_rows)} rows), "
            f"{len(self.skipped_tables)} skipped"
        )

        preserved = self.preserved_columns
        if preserved:
            lines.append("")
            lines.append(
                f"WARNING: {len(preserved)} columns have no rules and will output REAL DATA."
            )
            lines.append("   Review the 'preserve' columns above. Add rules for any PII columns.")

        return "\n".join(lines) + "\n"


def build_preview(introspector, tables: list[TableRef], rule_index: RuleIndex, seed: str) -> DryRunPreview:
    """
    Collect row counts and resolved column strategies for ``tables``.

    Args:
        introspector: Provides ``row_count`` and ``list_columns``
        tables: Resolved tables, in the order to show them
        rule_index: Rules to resolve column strategies against
        seed: Seed of the run; only shown masked

    Raises:
        IntrospectionError: If a catalog query fails
    """
    preview = DryRunPreview(
        seed=seed,
        skipped_tables=sorted(f"{schema}.{name}" for schema, name in rule_index.skipped_tables),
    )

    for table in tables:
        columns = introspector.list_columns(table)
        preview.tables.append(
            TablePreview(
                table=table,
                row_count=introspector.row_count(table),
                columns=rule_index.column_strategies(table.schema, table.name, columns),
            )
        )

    preserved = preview.preserved_columns
    if preserved:
        logger.warning(
            f"{len(preserved)} columns have no rules and will output real data",
            extra={"preserved_columns": preserved},
        )

    return preview
