"""
Shared metrics configuration for the payment signing key cache.
"""

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
from typing import Any, Dict, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for the key cache.

    Each collector registers on its own registry unless one is passed in,
    so several providers can live in one process without name clashes.
    """

    def __init__(self, service_name: str = "payment_keys", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up key cache metrics."""
        self._metrics["payment_keys_requests_total"] = Counter(
            "payment_keys_requests_total",
            "Key lookups by cache outcome",
            ["result"],
            registry=self.registry
        )

        self._metrics["payment_keys_fetch_total"] = Counter(
            "payment_keys_fetch_total",
            "Key document fetches by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["payment_keys_fetch_duration_seconds"] = Histogram(
            "payment_keys_fetch_duration_seconds",
            "Key document fetch and parse duration in seconds",
            registry=self.registry
        )

        self._metrics["payment_keys_cached_keys"] = Gauge(
            "payment_keys_cached_keys",
            "Number of cached keys per protocol version",
            ["protocol_version"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def _child(self, metric_name: str, labels: Dict[str, Any]):
        metric = self._metrics.get(metric_name)
        if metric is None:
            return None
        return metric.labels(**labels) if labels else metric

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        with self._lock:
            child = self._child(metric_name, labels)
            if child is not None:
                child.inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        with self._lock:
            child = self._child(metric_name, labels)
            if child is not None:
                child.set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        with self._lock:
            child = self._child(metric_name, labels)
            if child is not None:
                child.observe(value)

    def clear_metric(self, metric_name: str):
        """Drop all labelled children of a metric."""
        with self._lock:
            metric = self._metrics.get(metric_name)
            if metric is not None:
                metric.clear()

    def sample_value(self, metric_name: str, **labels) -> Optional[float]:
        """Read back the current value of a counter or gauge sample."""
        return self.registry.get_sample_value(metric_name, labels or None)

