"""
Prometheus metrics for the search sink.

Registered in the global prometheus_client REGISTRY on import.
"""

from prometheus_client import Counter, Histogram

SINK_RECORDS_TOTAL = Counter(
    "search_sink_records_total",
    "Records classified into index operations",
    ["operation"],
)

SINK_REQUESTS_TOTAL = Counter(
    "search_sink_requests_total",
    "Dispatch requests sent to the cluster",
    ["destination", "kind", "status"],
)

SINK_DISPATCH_LATENCY = Histogram(
    "search_sink_dispatch_latency_seconds",
    "Latency of a single dispatch request",
    ["destination"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

SINK_BATCHES_TOTAL = Counter(
    "search_sink_batches_total",
    "process_batch calls by outcome",
    ["outcome"],
)

COLLECTIONS_CREATED_TOTAL = Counter(
    "search_sink_collections_created_total",
    "Collections created by auto-create",
)


class MetricsRegistry:
    """Centralized access to the sink's metrics."""

    records_total = SINK_RECORDS_TOTAL
    requests_total = SINK_REQUESTS_TOTAL
    dispatch_latency = SINK_DISPATCH_LATENCY
    batches_total = SINK_BATCHES_TOTAL
    collections_created_total = COLLECTIONS_CREATED_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
