"""
Custom metrics publishing to Prometheus

Usage:
    from utils.metrics import ExportMetrics, MetricsPublisher

    metrics = ExportMetrics()
    MetricsPublisher(port=9091).start()

    metrics.record_table("public.users", success=True, duration=2.4, rows=1000)
"""

from .export import ExportMetrics
from .publisher import MetricsPublisher

__all__ = [
    "ExportMetrics",
    "MetricsPublisher",
]
