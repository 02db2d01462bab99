"""
Anonymization rule model.

A rule either excludes a whole table (``skip``) or assigns a strategy to one
column. Rules are built once from the validated rule file and never change
during a dump; :class:`RuleIndex` is the read-only lookup the export loop uses.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_SCHEMA = "public"


class Strategy(Enum):
    """Supported anonymization strategies, valued by their rule-file spelling."""

    FAKE_EMAIL = "fake_email"
    FAKE_NAME = "fake_name"
    FAKE_FIRST_NAME = "fake_first_name"
    FAKE_LAST_NAME = "fake_last_name"
    REDACT = "redact"
    NULL = "null"
    ZERO = "zero"
    FAKE_UUID = "fake_uuid"
    SKIP = "skip"
    PRESERVE = "preserve"

    @classmethod
    def names(cls) -> list[str]:
        return [strategy.value for strategy in cls]

    @classmethod
    def parse(cls, name: "str | Strategy") -> "Strategy":
        """
        Parse a strategy name from a rule file.

        Raises:
            ConfigurationError: If the name is not a known strategy
        """
        if isinstance(name, Strategy):
            return name
        try:
            return cls(name)
        except ValueError:
            raise ConfigurationError(
                f'Unknown strategy "{name}". '
                f"Available strategies: {', '.join(cls.names())}"
            ) from None

    @classmethod
    def lookup(cls, name: "str | Strategy") -> "Strategy":
        """Like :meth:`parse`, but unknown names fall back to PRESERVE."""
        try:
            return cls.parse(name)
        except ConfigurationError:
            logger.debug(f"Unknown strategy {name!r}, preserving column")
            return cls.PRESERVE


def parse_table_name(name: str) -> tuple[str, str]:
    """
    Split ``schema.table`` into its parts.

    Examples:
        app.users -> ("app", "users")
        users -> ("public", "users")
    """
    schema, sep, table = name.partition(".")
    if not sep:
        return DEFAULT_SCHEMA, name
    return schema, table


@dataclass(frozen=True)
class AnonymizeRule:
    """A table-level skip or a column-level strategy assignment."""

    table_schema: str
    table_name: str
    column_name: str | None
    strategy: Strategy

    @classmethod
    def column(
        cls, schema: str, table: str, column: str, strategy: "str | Strategy"
    ) -> "AnonymizeRule":
        return cls(schema, table, column, Strategy.parse(strategy))

    @classmethod
    def skip_table(cls, schema: str, table: str) -> "AnonymizeRule":
        return cls(schema, table, None, Strategy.SKIP)

    @property
    def is_skip(self) -> bool:
        return self.column_name is None and self.strategy is Strategy.SKIP

    @property
    def qualified_table(self) -> str:
        return f"{self.table_schema}.{self.table_name}"


class RuleIndex:
    """
    Immutable (schema, table, column) -> strategy lookup.

    Columns without a rule resolve to ``Strategy.PRESERVE``. When several rules
    name the same column, the last one wins.
    """

    def __init__(self, rules: Iterable[AnonymizeRule]):
        columns: dict[tuple[str, str, str], Strategy] = {}
        skipped: set[tuple[str, str]] = set()

        for rule in rules:
            if rule.is_skip:
                skipped.add((rule.table_schema, rule.table_name))
            elif rule.column_name is not None:
                columns[(rule.table_schema, rule.table_name, rule.column_name)] = rule.strategy

        self._columns = columns
        self._skipped = frozenset(skipped)

    def __len__(self) -> int:
        return len(self._columns) + len(self._skipped)

    @property
    def skipped_tables(self) -> frozenset[tuple[str, str]]:
        return self._skipped

    def is_skipped(self, schema: str, table: str) -> bool:
        return (schema, table) in self._skipped

    def strategy_for(self, schema: str, table: str, column: str) -> Strategy:
        return self._columns.get((schema, table, column), Strategy.PRESERVE)

    def column_strategies(
        self, schema: str, table: str, columns: Iterable[str]
    ) -> list[tuple[str, Strategy]]:
        """Resolve every column of a table, keeping catalog order."""
        return [(column, self.strategy_for(schema, table, column)) for column in columns]
