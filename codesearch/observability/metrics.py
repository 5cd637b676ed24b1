"""
Prometheus metrics for vector store operations.

Defines and exposes metrics for:
- Points upserted and upsert batch outcomes
- Backend request latency per operation
- Filter expressions that degraded to unfiltered queries
- Metadata payloads that could not be deserialized

Metrics register with the default prometheus_client registry; the host
application decides how to expose it.
"""

from prometheus_client import Counter, Histogram

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class VectorStoreMetrics:
    """
    Prometheus metrics collector for the vector store adapters.

    Usage:
        metrics = get_metrics()
        metrics.record_upsert_batch("rest", size=100, success=True)
        metrics.record_request_latency("rest", "search", 0.04)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""
        self.points_upserted = Counter(
            "codesearch_points_upserted_total",
            "Total number of points upserted into the vector database",
            ["backend"],
        )

        self.upsert_batches = Counter(
            "codesearch_upsert_batches_total",
            "Total upsert batches issued",
            ["backend", "status"],  # status: success, error
        )

        self.request_latency = Histogram(
            "codesearch_vectordb_request_latency_seconds",
            "Time spent in vector database requests",
            ["backend", "operation"],
            buckets=LATENCY_BUCKETS,
        )

        self.filter_fallbacks = Counter(
            "codesearch_filter_fallbacks_total",
            "Filter expressions that could not be translated and ran unfiltered",
        )

        self.metadata_parse_failures = Counter(
            "codesearch_metadata_parse_failures_total",
            "Stored metadata payloads that failed to deserialize",
        )

    def record_upsert_batch(self, backend: str, size: int, success: bool) -> None:
        """
        Record one upsert batch.

        Args:
            backend: Adapter name (rest, native)
            size: Number of points in the batch
            success: Whether the backend acknowledged the batch
        """
        status = "success" if success else "error"
        self.upsert_batches.labels(backend=backend, status=status).inc()
        if success:
            self.points_upserted.labels(backend=backend).inc(size)

    def record_request_latency(
        self,
        backend: str,
        operation: str,
        latency: float,
    ) -> None:
        """Record latency of a single backend request."""
        self.request_latency.labels(backend=backend, operation=operation).observe(latency)

    def record_filter_fallback(self) -> None:
        """Record an untranslatable filter expression."""
        self.filter_fallbacks.inc()

    def record_metadata_parse_failure(self) -> None:
        """Record a metadata payload that failed to deserialize."""
        self.metadata_parse_failures.inc()


# Global metrics instance
_metrics: VectorStoreMetrics | None = None


def get_metrics() -> VectorStoreMetrics:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = VectorStoreMetrics()
    return _metrics
