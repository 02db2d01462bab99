"""
Table set resolution.

Filters the catalog's table list down to the tables a dump exports: internal
schemas and tables with a table-level ``skip`` rule are removed. Ordering is
left to :mod:`anonymize.dependency`.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from utils.sql_safety import quote_qualified

from .functions import FUNCTION_SCHEMA
from .rules import AnonymizeRule, RuleIndex

logger = logging.getLogger(__name__)


EXCLUDED_SCHEMAS = frozenset({
    FUNCTION_SCHEMA,
    "pg_catalog",
    "pg_toast",
    "information_schema",
})

# pg_temp_N, pg_toast_temp_N and any future engine-reserved schema
RESERVED_SCHEMA_PREFIX = "pg_"


@dataclass(frozen=True, order=True)
class TableRef:
    """A table to export, identified by schema and name."""

    schema: str
    name: str

    @property
    def qualified(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def quoted(self) -> str:
        return quote_qualified(self.schema, self.name)

    def __str__(self) -> str:
        return self.qualified


def is_excluded_schema(schema: str) -> bool:
    """Check if a schema is internal to the engine or to this tool."""
    return schema in EXCLUDED_SCHEMAS or schema.startswith(RESERVED_SCHEMA_PREFIX)


def resolve_tables(
    all_tables: Iterable[TableRef],
    rules: RuleIndex | Iterable[AnonymizeRule],
) -> list[TableRef]:
    """
    Compute the set of tables to export.

    Args:
        all_tables: Every base table reported by the catalog
        rules: Rule index (or raw rules) supplying table-level skips

    Returns:
        Tables outside internal schemas and not skipped, in input order
    """
    index = rules if isinstance(rules, RuleIndex) else RuleIndex(rules)

    resolved = []
    for table in all_tables:
        if is_excluded_schema(table.schema):
            continue
        if index.is_skipped(table.schema, table.name):
            logger.debug(f"Skipping table {table.qualified} (table-level skip rule)")
            continue
        resolved.append(table)

    return resolved
