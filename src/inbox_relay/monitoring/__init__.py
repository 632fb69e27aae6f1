"""Monitoring and metrics instrumentation for the inbox relay.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from inbox_relay.monitoring.metrics import (
    channel_post_latency_seconds,
    channel_posts_total,
    items_enqueued_total,
    items_posted_total,
    labels_applied_total,
    queue_items,
    reconciliations_total,
    stale_items_total,
)

__all__ = [
    "channel_posts_total",
    "channel_post_latency_seconds",
    "queue_items",
    "items_enqueued_total",
    "items_posted_total",
    "stale_items_total",
    "reconciliations_total",
    "labels_applied_total",
]
