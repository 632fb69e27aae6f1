"""Custom Prometheus metrics for the inbox relay.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- queue_items (Posted stuck at 1 with Queued growing means the oracle went silent)
- stale_items_total (items reverted or failed by the in-flight timeout)
- channel_posts_total{outcome!="delivered"} (channel unreachable)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Channel Metrics ===

channel_posts_total = Counter(
    "channel_posts_total",
    "Outbound posts by endpoint kind and outcome",
    ["kind", "outcome"],
)
"""
Labels:
- kind: channel (chat message), hub (direct registration)
- outcome: delivered, rejected (non-200), error (transport), skipped (no URL)
"""

channel_post_latency_seconds = Histogram(
    "channel_post_latency_seconds",
    "Outbound post latency in seconds",
    ["kind"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# === Queue Metrics ===

queue_items = Gauge(
    "queue_items",
    "Stored queue items by status (sampled after each tick)",
    ["status"],
)

items_enqueued_total = Counter(
    "items_enqueued_total",
    "Items added to the queue by inbox scans",
)

items_posted_total = Counter(
    "items_posted_total",
    "Items transitioned to Posted",
    ["trigger"],
)
"""
Labels:
- trigger: tick (timer or on-demand), chain (advanced after a resolution)
"""

stale_items_total = Counter(
    "stale_items_total",
    "Posted items past the in-flight timeout",
    ["outcome"],
)
"""
Labels:
- outcome: requeued (back to Queued), failed (moved to Error)
"""

# === Reconciliation Metrics ===

reconciliations_total = Counter(
    "reconciliations_total",
    "Inbound webhook calls by action and outcome",
    ["action", "outcome"],
)

labels_applied_total = Counter(
    "labels_applied_total",
    "Label applications by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: applied, not_found (label missing from inventory), error
"""
