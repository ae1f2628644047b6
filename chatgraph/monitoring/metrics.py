"""
Prometheus Metrics

Defines and exports metrics for monitoring pipeline runs.
"""

from prometheus_client import Counter, Histogram

# Singleton metrics instance
_metrics: "Metrics | None" = None


class Metrics:
    """
    Prometheus metrics for chatgraph.

    Tracks:
    - Pipeline runs and their duration
    - Gateway retries and final failures
    - Name enrichment lookups
    """

    def __init__(self):
        self.pipeline_runs_total = Counter(
            "chatgraph_pipeline_runs_total",
            "Total pipeline runs by outcome",
            ["status"],
        )

        self.pipeline_duration_seconds = Histogram(
            "chatgraph_pipeline_duration_seconds",
            "Pipeline run duration in seconds",
            buckets=[1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0],
        )

        self.gateway_retries_total = Counter(
            "chatgraph_gateway_retries_total",
            "Total gateway call retries by operation and reason",
            ["operation", "reason"],
        )

        self.gateway_failures_total = Counter(
            "chatgraph_gateway_failures_total",
            "Gateway calls that failed after all attempts",
            ["operation"],
        )

        self.enrichment_lookups_total = Counter(
            "chatgraph_enrichment_lookups_total",
            "Profile lookups issued for unnamed nodes by outcome",
            ["outcome"],
        )

    def track_pipeline_run(self, status: str, duration: float | None = None) -> None:
        self.pipeline_runs_total.labels(status=status).inc()
        if duration is not None:
            self.pipeline_duration_seconds.observe(duration)

    def track_gateway_retry(self, operation: str, reason: str) -> None:
        self.gateway_retries_total.labels(operation=operation, reason=reason).inc()

    def track_gateway_failure(self, operation: str) -> None:
        self.gateway_failures_total.labels(operation=operation).inc()

    def track_enrichment_lookup(self, outcome: str) -> None:
        self.enrichment_lookups_total.labels(outcome=outcome).inc()


def get_metrics() -> Metrics:
    """Get or create the singleton metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = Metrics()
    return _metrics
