"""
Transform compiler.

Turns (column, strategy, seed) into a single SQL projection term. Every term
that changes the value is aliased back to the original column name, so a
projection keeps the table's column names and order whatever the rule mix.
All functions here are pure: identical arguments give byte-identical SQL.
"""

from collections.abc import Sequence

from utils.sql_safety import quote_identifier, quote_literal

from .functions import qualified_function
from .rules import RuleIndex, Strategy
from .tables import TableRef


# Seeded fakers: strategy -> installed function name
_SEEDED_FUNCTIONS = {
    Strategy.FAKE_EMAIL: "anon_fake_email",
    Strategy.FAKE_NAME: "anon_fake_name",
    Strategy.FAKE_FIRST_NAME: "anon_fake_first_name",
    Strategy.FAKE_LAST_NAME: "anon_fake_last_name",
}


def build_column_expression(column: str, strategy: "Strategy | str", seed: str) -> str:
    """
    Build the SQL expression for one column.

    Args:
        column: Column name as stored in the catalog
        strategy: Strategy (or its rule-file name; unknown names preserve)
        seed: Run-wide seed passed to the seeded fakers

    Returns:
        Projection term, aliased to ``column`` unless it is the bare column

    Raises:
        ValueError: If ``column`` is empty or either argument contains a NUL
            character. Catalog names and loaded seeds never do.

    Examples:
        ("email", NULL, _) -> NULL AS "email"
        ("id", PRESERVE, _) -> "id"
        ("email", FAKE_EMAIL, "s1") -> anonymize.anon_fake_email("email", 's1') AS "email"
    """
    strategy = Strategy.lookup(strategy)
    ident = quote_identifier(column)

    if strategy is Strategy.NULL:
        return f"NULL AS {ident}"
    if strategy is Strategy.ZERO:
        return f"0 AS {ident}"
    if strategy is Strategy.REDACT:
        return f"{qualified_function('anon_redact')}({ident}) AS {ident}"
    if strategy is Strategy.FAKE_UUID:
        return (
            f"{qualified_function('anon_fake_uuid')}({ident}::text, {quote_literal(seed)})::uuid "
            f"AS {ident}"
        )
    if strategy in _SEEDED_FUNCTIONS:
        function = qualified_function(_SEEDED_FUNCTIONS[strategy])
        return f"{function}({ident}, {quote_literal(seed)}) AS {ident}"

    # PRESERVE, and SKIP reaching column level
    return ident


def build_projection(
    table: TableRef,
    columns: Sequence[str],
    rule_index: RuleIndex,
    seed: str,
) -> list[str]:
    """Compile one term per column, in catalog order."""
    return [
        build_column_expression(column, strategy, seed)
        for column, strategy in rule_index.column_strategies(table.schema, table.name, columns)
    ]


def build_anonymized_select(
    table: TableRef,
    columns: Sequence[str],
    rule_index: RuleIndex,
    seed: str,
) -> str:
    """
    Build ``SELECT <expr>, ... FROM ONLY "schema"."table"`` for a table.

    ``ONLY`` keeps rows of partitions and inheritance children out of the
    parent's block; those tables are exported on their own. A table without
    columns yields ``SELECT FROM ONLY ...``, which PostgreSQL accepts and which
    exports one empty line per row.
    """
    terms = build_projection(table, columns, rule_index, seed)
    if not terms:
        return f"SELECT FROM ONLY {table.quoted}"
    return f"SELECT {', '.join(terms)} FROM ONLY {table.quoted}"


def build_copy_out(select_sql: str) -> str:
    """Wrap a projection in a bulk export statement."""
    return f"COPY ({select_sql}) TO STDOUT"


def build_copy_header(table: TableRef, columns: Sequence[str]) -> str:
    """Framing line that replays the following rows into ``table``."""
    if not columns:
        return f"COPY {table.quoted} FROM stdin;\n"
    column_list = ", ".join(quote_identifier(column) for column in columns)
    return f"COPY {table.quoted} ({column_list}) FROM stdin;\n"


COPY_TERMINATOR = "\\.\n\n"
