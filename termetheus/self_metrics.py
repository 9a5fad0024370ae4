"""Self-monitoring metrics for the chart viewer using prometheus_client."""
import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)


class SelfMetrics:
    """Counters and timings of the fetch and render loop."""

    def __init__(self, registry=None, prefix="termetheus_"):
        if registry is None:
            # Keep default Python/process collectors out of the exposition
            registry = CollectorRegistry()
        self.registry = registry

        self.frames_total = Counter(
            f"{prefix}frames_total",
            "Total number of chart frames drawn",
            registry=registry
        )

        self.frame_render_seconds = Histogram(
            f"{prefix}frame_render_seconds",
            "Time spent composing and drawing one frame",
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
            registry=registry
        )

        self.fetch_duration_seconds = Histogram(
            f"{prefix}fetch_duration_seconds",
            "Duration of the query_range request",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.fetch_errors_total = Counter(
            f"{prefix}fetch_errors_total",
            "Total number of failed query_range requests",
            ["reason"],
            registry=registry
        )

        self.series_plotted = Gauge(
            f"{prefix}series_plotted",
            "Number of series on the chart",
            registry=registry
        )

    def record_frame(self, duration: float):
        """Record one drawn frame."""
        self.frames_total.inc()
        self.frame_render_seconds.observe(duration)

    def record_fetch(self, duration: float):
        """Record a completed fetch."""
        self.fetch_duration_seconds.observe(duration)

    def record_fetch_error(self, reason: str):
        """Record a failed fetch."""
        self.fetch_errors_total.labels(reason=reason).inc()

    def set_series_plotted(self, count: int):
        """Set the number of plotted series."""
        self.series_plotted.set(count)


def start_metrics_server(port: int, metrics: SelfMetrics, bind_address: str = "127.0.0.1"):
    """Expose the self-metrics registry on /metrics."""
    try:
        start_http_server(port, addr=bind_address, registry=metrics.registry)
        logger.info(f"Self-metrics listening on {bind_address}:{port}/metrics")
    except Exception as e:
        logger.error(f"Failed to start self-metrics HTTP server: {e}")
        raise
