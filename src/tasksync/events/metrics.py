"""Prometheus metrics for webhook synchronization.

Metrics are exposed at the `/metrics` endpoint in Prometheus text format.

Metrics Defined:
- tasksync_webhook_deliveries_total: Authenticated deliveries by event and outcome
- tasksync_webhook_rejections_total: Deliveries rejected before dispatch
- tasksync_notifications_total: Outbound task notifications by result
"""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, generate_latest


logger = logging.getLogger(__name__)


class SyncMetrics:
    """Container for the sync engine's Prometheus metrics.

    Pass a fresh CollectorRegistry in tests so repeated instantiation does
    not collide with collectors already registered on the default registry.

    Attributes:
        registry: The Prometheus registry for these metrics.
        deliveries_total: Counter labelled by event and outcome.
        rejections_total: Counter labelled by reason
            (signature/payload).
        notifications_total: Counter labelled by result
            (sent/skipped/failed).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.deliveries_total = Counter(
            "tasksync_webhook_deliveries_total",
            "Total number of authenticated webhook deliveries dispatched",
            labelnames=["event", "outcome"],
            registry=self.registry,
        )
        self.rejections_total = Counter(
            "tasksync_webhook_rejections_total",
            "Total number of webhook deliveries rejected before dispatch",
            labelnames=["reason"],
            registry=self.registry,
        )
        self.notifications_total = Counter(
            "tasksync_notifications_total",
            "Total number of outbound task notifications",
            labelnames=["result"],
            registry=self.registry,
        )

    def record_delivery(self, event: str, outcome: str) -> None:
        self.deliveries_total.labels(event=event, outcome=outcome).inc()

    def record_rejection(self, reason: str) -> None:
        self.rejections_total.labels(reason=reason).inc()

    def record_notification(self, result: str) -> None:
        self.notifications_total.labels(result=result).inc()

    def generate(self) -> bytes:
        """Render this registry in Prometheus text format."""
        return generate_latest(self.registry)


_default_metrics: Optional[SyncMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> SyncMetrics:
    """Get the process-wide metrics, or a new instance for a custom registry."""
    global _default_metrics

    if registry is not None:
        return SyncMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = SyncMetrics()

    return _default_metrics
