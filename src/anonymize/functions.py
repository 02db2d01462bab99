"""
Server-side transform function library.

The fakers are PL/pgSQL functions installed into the ``anonymize`` schema.
Each one is IMMUTABLE and returns NULL for NULL input; the seeded ones hash
``value || seed`` with sha256, so the same (value, seed) pair always yields the
same fake value and no mapping table has to be stored.
"""

import logging
from typing import Any

import psycopg2

from utils.tracing import trace_operation

from .errors import SetupError

logger = logging.getLogger(__name__)


FUNCTION_SCHEMA = "anonymize"

FIRST_NAMES = (
    "Alice", "Bob", "Carol", "David", "Emma", "Frank", "Grace", "Henry",
    "Iris", "Jack", "Karen", "Leo", "Mia", "Noah", "Olivia",
)
LAST_NAMES = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
    "Davis", "Rodriguez", "Martinez", "Wilson", "Anderson", "Taylor",
    "Thomas", "Moore",
)
EMAIL_DOMAINS = ("example.com", "test.org", "sample.net")


def _text_array(values: tuple[str, ...]) -> str:
    return "ARRAY[" + ", ".join(f"'{value}'" for value in values) + "]"


# sha256 of the value and seed, first 32 bits of the hex digest at a given offset
_HASH_PICK = "('x' || substring(hash_val, {start}, 8))::bit(32)::bigint"


FAKE_EMAIL_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_fake_email(val TEXT, seed TEXT) RETURNS TEXT AS $$
DECLARE
    hash_val TEXT;
    first_names TEXT[] := {_text_array(tuple(n.lower() for n in FIRST_NAMES))};
    last_names TEXT[] := {_text_array(tuple(n.lower() for n in LAST_NAMES))};
    domains TEXT[] := {_text_array(EMAIL_DOMAINS)};
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    hash_val := encode(sha256(convert_to(val || seed, 'UTF8')), 'hex');
    RETURN first_names[1 + abs({_HASH_PICK.format(start=1)}) % array_length(first_names, 1)]
        || '.' || last_names[1 + abs({_HASH_PICK.format(start=9)}) % array_length(last_names, 1)]
        || '.' || substring(hash_val, 25, 4)
        || '@' || domains[1 + abs({_HASH_PICK.format(start=17)}) % array_length(domains, 1)];
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

FAKE_NAME_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_fake_name(val TEXT, seed TEXT) RETURNS TEXT AS $$
DECLARE
    hash_val TEXT;
    first_names TEXT[] := {_text_array(FIRST_NAMES)};
    last_names TEXT[] := {_text_array(LAST_NAMES)};
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    hash_val := encode(sha256(convert_to(val || seed, 'UTF8')), 'hex');
    RETURN first_names[1 + abs({_HASH_PICK.format(start=1)}) % array_length(first_names, 1)]
        || ' ' || last_names[1 + abs({_HASH_PICK.format(start=9)}) % array_length(last_names, 1)];
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

FAKE_FIRST_NAME_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_fake_first_name(val TEXT, seed TEXT) RETURNS TEXT AS $$
DECLARE
    hash_val TEXT;
    first_names TEXT[] := {_text_array(FIRST_NAMES)};
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    hash_val := encode(sha256(convert_to(val || seed, 'UTF8')), 'hex');
    RETURN first_names[1 + abs({_HASH_PICK.format(start=1)}) % array_length(first_names, 1)];
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

FAKE_LAST_NAME_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_fake_last_name(val TEXT, seed TEXT) RETURNS TEXT AS $$
DECLARE
    hash_val TEXT;
    last_names TEXT[] := {_text_array(LAST_NAMES)};
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    hash_val := encode(sha256(convert_to(val || seed, 'UTF8')), 'hex');
    RETURN last_names[1 + abs({_HASH_PICK.format(start=1)}) % array_length(last_names, 1)];
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

# Letters become X, digits become 9, everything else is kept
REDACT_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_redact(val TEXT) RETURNS TEXT AS $$
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    RETURN regexp_replace(regexp_replace(val, '[a-zA-Z]', 'X', 'g'), '[0-9]', '9', 'g');
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

# Version 4 / variant 8 layout so the result casts back to uuid
FAKE_UUID_SQL = f"""
CREATE OR REPLACE FUNCTION {FUNCTION_SCHEMA}.anon_fake_uuid(val TEXT, seed TEXT) RETURNS TEXT AS $$
DECLARE
    hash_val TEXT;
BEGIN
    IF val IS NULL THEN RETURN NULL; END IF;
    hash_val := encode(sha256(convert_to(val || seed, 'UTF8')), 'hex');
    RETURN substring(hash_val, 1, 8) || '-'
        || substring(hash_val, 9, 4) || '-'
        || '4' || substring(hash_val, 14, 3) || '-'
        || '8' || substring(hash_val, 18, 3) || '-'
        || substring(hash_val, 21, 12);
END;
$$ LANGUAGE plpgsql IMMUTABLE
"""

FUNCTION_DEFINITIONS: dict[str, str] = {
    "anon_fake_email": FAKE_EMAIL_SQL,
    "anon_fake_name": FAKE_NAME_SQL,
    "anon_fake_first_name": FAKE_FIRST_NAME_SQL,
    "anon_fake_last_name": FAKE_LAST_NAME_SQL,
    "anon_redact": REDACT_SQL,
    "anon_fake_uuid": FAKE_UUID_SQL,
}


def qualified_function(name: str) -> str:
    """Schema-qualified name of an installed transform function."""
    return f"{FUNCTION_SCHEMA}.{name}"


def install_functions(connection: Any) -> list[str]:
    """
    Create the ``anonymize`` schema and (re)install every transform function.

    Runs in a single transaction: either all functions are installed or none.

    Args:
        connection: Open psycopg2 connection with CREATE privileges

    Returns:
        Names of the installed functions

    Raises:
        SetupError: If any statement fails
    """
    installed = []
    with trace_operation("anonymize.install_functions", schema=FUNCTION_SCHEMA):
        try:
            with connection:
                with connection.cursor() as cursor:
                    cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {FUNCTION_SCHEMA}")
                    for name, definition in FUNCTION_DEFINITIONS.items():
                        logger.debug(f"Installing function {qualified_function(name)}")
                        cursor.execute(definition)
                        installed.append(name)
        except psycopg2.Error as e:
            raise SetupError(f"Failed to install transform functions: {e}") from e

    logger.info(f"Installed {len(installed)} transform functions in schema {FUNCTION_SCHEMA}")
    return installed
