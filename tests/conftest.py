"""
Pytest configuration and fixtures for pg-anonymize tests.
Provides in-memory stand-ins for the catalog and the bulk channel.
"""

import io
import os

import pytest

from anonymize.rules import AnonymizeRule, RuleIndex
from anonymize.tables import TableRef


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakeIntrospector:
    """Catalog with fixed tables, columns, row counts and FKs."""

    def __init__(self, columns=None, row_counts=None, foreign_keys=None, functions_installed=True):
        self.columns = columns or {}
        self.row_counts = row_counts or {}
        self.foreign_keys = foreign_keys or []
        self._functions_installed = functions_installed
        self.column_calls = []

    def list_tables(self):
        return sorted(self.columns)

    def list_columns(self, table):
        self.column_calls.append(table)
        return list(self.columns[table])

    def list_foreign_keys(self):
        return list(self.foreign_keys)

    def row_count(self, table):
        return self.row_counts.get(table, 0)

    def functions_installed(self):
        return self._functions_installed


class FakeChannel:
    """
    Bulk channel returning canned COPY output per table.

    ``failures`` maps a table's quoted name to the exception raised when its
    COPY is opened.
    """

    def __init__(self, outputs=None, failures=None, chunk_size=4):
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.chunk_size = chunk_size
        self.statements = []

    def copy_out(self, sql, destination):
        self.statements.append(sql)

        for quoted, error in self.failures.items():
            if f"FROM ONLY {quoted})" in sql:
                raise error

        for quoted, data in self.outputs.items():
            if f"FROM ONLY {quoted})" in sql:
                for start in range(0, len(data), self.chunk_size):
                    destination.write(data[start:start + self.chunk_size])
                return


@pytest.fixture
def make_introspector():
    return FakeIntrospector


@pytest.fixture
def make_channel():
    return FakeChannel


@pytest.fixture
def users_table() -> TableRef:
    return TableRef("public", "users")


@pytest.fixture
def accounts_rules() -> RuleIndex:
    """Rules for the public.accounts scenario."""
    return RuleIndex([
        AnonymizeRule.column("public", "accounts", "email", "fake_email"),
        AnonymizeRule.column("public", "accounts", "ssn", "null"),
    ])


@pytest.fixture
def sink() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove environment variables that change CLI and config behaviour."""
    for key in ("DATABASE_URL", "ANONYMIZE_SEED", "ANONYMIZE_CONFIG", "LOG_LEVEL",
                "LOG_FILE", "LOG_JSON", "LOG_CONSOLE", "OTLP_ENDPOINT"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(scope="session")
def test_database_url() -> str:
    """Disposable PostgreSQL for integration tests; skips when unset."""
    url = os.getenv("ANONYMIZE_TEST_DATABASE_URL")
    if not url:
        pytest.skip("ANONYMIZE_TEST_DATABASE_URL not set")
    return url
