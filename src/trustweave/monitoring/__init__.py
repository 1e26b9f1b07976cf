"""In-process monitoring."""

from trustweave.monitoring.metrics import MetricsCollector, MetricPoint, MetricType

__all__ = ["MetricsCollector", "MetricPoint", "MetricType"]
