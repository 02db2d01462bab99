"""
Unit tests for utils.tracing and anonymize.connection
"""

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from anonymize.connection import connect
from anonymize.errors import ConfigurationError, IntrospectionError
from anonymize.tables import TableRef
from utils.tracing import add_span_attributes, initialize_tracing, shutdown_tracing, trace_operation


class TestTraceOperation:
    """Test span context manager"""

    def test_yields_span(self):
        with trace_operation("anonymize.test", table="public.users") as span:
            assert span is not None

    def test_reraises(self):
        with pytest.raises(ValueError, match="boom"):
            with trace_operation("anonymize.test"):
                raise ValueError("boom")

    def test_records_exception_on_span(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        with patch("utils.tracing.context.get_tracer", return_value=tracer):
            with pytest.raises(RuntimeError):
                with trace_operation("anonymize.test", rows=3):
                    raise RuntimeError("fail")

        span.set_attribute.assert_any_call("rows", 3)
        span.set_attribute.assert_any_call("error.type", "RuntimeError")
        span.record_exception.assert_called_once()

    def test_add_span_attributes_without_span(self):
        add_span_attributes(rows=1)

    def test_attribute_types(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        with patch("utils.tracing.context.get_tracer", return_value=tracer):
            with trace_operation("anonymize.test", table=TableRef("public", "users"), readonly=True, host=None):
                pass

        span.set_attribute.assert_any_call("table", "public.users")
        span.set_attribute.assert_any_call("readonly", True)
        assert all(c.args[0] != "host" for c in span.set_attribute.call_args_list)


class TestInitializeTracing:
    """Test tracer setup"""

    @patch("utils.tracing.tracer.trace.set_tracer_provider")
    def test_console_exporter(self, mock_set_provider, clean_env):
        try:
            initialize_tracing(console_export=True)

            mock_set_provider.assert_called_once()
            provider = mock_set_provider.call_args.args[0]
            assert provider.resource.attributes["service.name"] == "pg-anonymize"
        finally:
            shutdown_tracing()

    @patch("utils.tracing.tracer.trace.set_tracer_provider")
    def test_initialize_once(self, mock_set_provider, clean_env):
        try:
            initialize_tracing()
            initialize_tracing()

            assert mock_set_provider.call_count == 1
        finally:
            shutdown_tracing()


class TestConnect:
    """Test the connection factory"""

    def test_requires_url(self):
        with pytest.raises(ConfigurationError, match="No database URL"):
            connect("")

    @patch("anonymize.connection.psycopg2.connect")
    def test_readonly_snapshot(self, mock_connect):
        conn = MagicMock()
        mock_connect.return_value = conn

        assert connect("postgres://localhost/app", readonly=True) is conn

        mock_connect.assert_called_once_with("postgres://localhost/app", connect_timeout=10)
        conn.set_session.assert_called_once_with(
            isolation_level=psycopg2.extensions.ISOLATION_LEVEL_REPEATABLE_READ,
            readonly=True,
        )

    @patch("anonymize.connection.psycopg2.connect")
    def test_read_write(self, mock_connect):
        connect("postgres://localhost/app")

        mock_connect.return_value.set_session.assert_not_called()

    @patch("anonymize.connection.psycopg2.connect", side_effect=psycopg2.OperationalError("refused"))
    def test_connection_error(self, mock_connect):
        with pytest.raises(IntrospectionError, match="Could not connect"):
            connect("postgres://localhost/app")
