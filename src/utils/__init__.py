"""
Ambient utilities for pg-anonymize

Provides:
- logging: structured logging setup
- metrics: Prometheus export metrics
- tracing: OpenTelemetry spans
- sql_safety: identifier and literal quoting
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "sql_safety"]
