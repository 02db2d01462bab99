"""
Span helpers.

``trace_operation`` wraps a block in a span; ``add_span_attributes`` annotates
whichever span is current. Both are cheap no-ops while tracing is not
initialized.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer

_ATTRIBUTE_TYPES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    return value if isinstance(value, _ATTRIBUTE_TYPES) else str(value)


def _set_attributes(span: trace.Span, attributes: dict[str, Any]) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, _attribute_value(value))


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a span.

    Exceptions are recorded on the span and re-raised unchanged. Attribute
    values other than str, bool, int and float are stringified; None values
    are dropped.

    Args:
        operation_name: Span name, e.g. ``anonymize.export_table``
        kind: Span kind (INTERNAL, CLIENT, ...)
        **attributes: Span attributes

    Example:
        >>> with trace_operation("anonymize.export_table", table="public.users") as span:
        ...     rows = export(table)
        ...     span.set_attribute("rows", rows)
    """
    with get_tracer().start_as_current_span(operation_name, kind=kind) as span:
        _set_attributes(span, attributes)

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    current_span = trace.get_current_span()
    if current_span.is_recording():
        _set_attributes(current_span, attributes)
