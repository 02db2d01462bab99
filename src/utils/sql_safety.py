"""
SQL safety utilities for preventing SQL injection.

Provides identifier and literal quoting for safe SQL query construction.
Identifiers come from the live catalog and may legally contain any character,
so they are escaped rather than validated against a whitelist.
"""


def _reject_nul(value: str, kind: str) -> None:
    if "\x00" in value:
        raise ValueError(f"SQL {kind} cannot contain NUL characters: {value!r}")


def quote_identifier(identifier: str) -> str:
    """
    Quote a PostgreSQL identifier.

    Every identifier is wrapped in double quotes and embedded double quotes
    are doubled, so the result always denotes exactly ``identifier``.

    Args:
        identifier: Table, schema or column name as stored in the catalog

    Returns:
        Quoted identifier safe for use in SQL

    Raises:
        ValueError: If the identifier is empty or contains a NUL character
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")
    _reject_nul(identifier, "identifier")

    return '"' + identifier.replace('"', '""') + '"'


def quote_qualified(schema: str, name: str) -> str:
    """Quote a schema-qualified name as ``"schema"."name"``."""
    return f"{quote_identifier(schema)}.{quote_identifier(name)}"


def quote_literal(value: str) -> str:
    """
    Quote a string as a standard-conforming SQL literal.

    Args:
        value: Raw string value

    Returns:
        Single-quoted literal with embedded single quotes doubled

    Raises:
        ValueError: If the value contains a NUL character
    """
    _reject_nul(value, "literal")

    return "'" + value.replace("'", "''") + "'"
