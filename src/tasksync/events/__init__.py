"""Prometheus metrics for webhook deliveries and outbound notifications."""

from tasksync.events.metrics import SyncMetrics, get_metrics

__all__ = ["SyncMetrics", "get_metrics"]
