"""Simple in-process metrics collection for Bidhouse.

Counters and histograms live in memory and are exported in Prometheus text
format by the ``/metrics`` endpoint. Metric updates are guarded by thread
locks because store calls run in worker threads.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Mapping

LabelKey = tuple[tuple[str, str | None], ...]


def _labels_to_key(labels: Mapping[str, str | None] | None) -> LabelKey:
    if labels is None:
        return ()
    return tuple(sorted(labels.items()))


def _format_labels(key: LabelKey, extra: str = "") -> str:
    parts = [f'{k}="{v}"' for k, v in key]
    if extra:
        parts.append(extra)
    return "{" + ",".join(parts) + "}" if parts else ""


@dataclass
class Counter:
    """A monotonically increasing counter."""

    name: str
    help_text: str = ""
    _values: dict[LabelKey, float] = field(default_factory=lambda: defaultdict(float))
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc(
        self, value: float = 1.0, labels: Mapping[str, str | None] | None = None
    ) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Mapping[str, str | None] | None = None) -> float:
        key = _labels_to_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def items(self) -> list[tuple[LabelKey, float]]:
        with self._lock:
            return list(self._values.items())


@dataclass
class Histogram:
    """A histogram with cumulative buckets, a sum and a count per label set."""

    name: str
    help_text: str = ""
    buckets: tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)
    _observations: dict[LabelKey, list[float]] = field(
        default_factory=lambda: defaultdict(list)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(
        self, value: float, labels: Mapping[str, str | None] | None = None
    ) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            self._observations[key].append(value)

    def get_stats(
        self, labels: Mapping[str, str | None] | None = None
    ) -> dict[str, float]:
        key = _labels_to_key(labels)
        with self._lock:
            values = list(self._observations.get(key, ()))
        if not values:
            return {"count": 0, "sum": 0.0, "avg": 0.0}
        total = sum(values)
        return {"count": len(values), "sum": total, "avg": total / len(values)}

    def bucket_counts(self, key: LabelKey) -> list[tuple[float, int]]:
        with self._lock:
            values = list(self._observations.get(key, ()))
        return [(bound, sum(1 for v in values if v <= bound)) for bound in self.buckets]

    def label_keys(self) -> list[LabelKey]:
        with self._lock:
            return list(self._observations)


class MetricRegistry:
    """Registry for all metrics of the process."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name, help_text=help_text)
            return self._counters[name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name=name, help_text=help_text)
            return self._histograms[name]

    def all_counters(self) -> dict[str, Counter]:
        with self._lock:
            return dict(self._counters)

    def all_histograms(self) -> dict[str, Histogram]:
        with self._lock:
            return dict(self._histograms)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


_registry = MetricRegistry()


def get_registry() -> MetricRegistry:
    return _registry


def increment_counter(
    name: str,
    value: float = 1.0,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Increment a counter by name, creating it on first use."""
    _registry.counter(name, help_text).inc(value, labels)


def observe_histogram(
    name: str,
    value: float,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Record an observation in a histogram, creating it on first use."""
    _registry.histogram(name, help_text).observe(value, labels)


class Timer:
    """Context manager for timing operations and recording to a histogram."""

    def __init__(
        self,
        histogram_name: str,
        labels: Mapping[str, str | None] | None = None,
        help_text: str = "",
    ) -> None:
        self.histogram_name = histogram_name
        self.labels = labels
        self.help_text = help_text
        self._start = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        duration = time.perf_counter() - self._start
        observe_histogram(self.histogram_name, duration, self.labels, self.help_text)


# ---------------------------------------------------------------------------
# Bidhouse metrics
# ---------------------------------------------------------------------------

API_REQUESTS = "api_requests_total"
API_REQUEST_DURATION = "api_request_duration_seconds"
BIDS = "bids_total"
BID_ADMISSION_DURATION = "bid_admission_duration_seconds"
BID_CONFLICTS = "bid_conflicts_total"
DECISIONS = "decisions_total"
SETTLEMENTS = "settlements_total"
NOTIFICATIONS = "notifications_total"
BROADCASTS = "broadcasts_total"


def record_api_request(
    endpoint: str, method: str, status_code: int, duration: float
) -> None:
    labels = {"endpoint": endpoint, "method": method, "status": str(status_code)}
    increment_counter(API_REQUESTS, labels=labels, help_text="Total API requests")
    observe_histogram(
        API_REQUEST_DURATION,
        duration,
        labels={"endpoint": endpoint, "method": method},
        help_text="API request duration in seconds",
    )


def record_bid(outcome: str) -> None:
    """Count a bid attempt by outcome (``admitted`` or an error kind)."""
    increment_counter(BIDS, labels={"outcome": outcome}, help_text="Total bid attempts")


def record_bid_conflict() -> None:
    increment_counter(
        BID_CONFLICTS, help_text="Bid admissions that lost a store-level race"
    )


def record_decision(outcome: str) -> None:
    increment_counter(
        DECISIONS, labels={"outcome": outcome}, help_text="Total seller decisions"
    )


def record_settlement(to_state: str) -> None:
    increment_counter(
        SETTLEMENTS,
        labels={"to_state": to_state},
        help_text="Persisted lifecycle transitions",
    )


def record_notification(status: str) -> None:
    """Count notification outcomes: ``stored``, ``retried`` or ``failed``."""
    increment_counter(
        NOTIFICATIONS, labels={"status": status}, help_text="Notification deliveries"
    )


def record_broadcast(status: str, count: int = 1) -> None:
    """Count per-subscriber sends: ``delivered`` or ``dropped``."""
    increment_counter(
        BROADCASTS,
        value=float(count),
        labels={"status": status},
        help_text="Real-time event sends per subscriber",
    )


def get_metrics_summary() -> dict[str, object]:
    """Return a summary of all metrics for logging or API response."""
    counters: dict[str, dict[str, float]] = {}
    histograms: dict[str, dict[str, dict[str, float]]] = {}

    for name, counter in _registry.all_counters().items():
        counters[name] = {
            (",".join(f"{k}={v}" for k, v in key) or "default"): value
            for key, value in counter.items()
        }
    for name, histogram in _registry.all_histograms().items():
        histograms[name] = {
            (",".join(f"{k}={v}" for k, v in key) or "default"): histogram.get_stats(
                dict(key) if key else None
            )
            for key in histogram.label_keys()
        }
    return {"counters": counters, "histograms": histograms}


def format_prometheus() -> str:
    """Format metrics in Prometheus text exposition format."""
    lines: list[str] = []

    for name, counter in sorted(_registry.all_counters().items()):
        if counter.help_text:
            lines.append(f"# HELP {name} {counter.help_text}")
        lines.append(f"# TYPE {name} counter")
        for key, value in counter.items():
            lines.append(f"{name}{_format_labels(key)} {value}")

    for name, histogram in sorted(_registry.all_histograms().items()):
        if histogram.help_text:
            lines.append(f"# HELP {name} {histogram.help_text}")
        lines.append(f"# TYPE {name} histogram")
        for key in histogram.label_keys():
            stats = histogram.get_stats(dict(key) if key else None)
            for bound, count in histogram.bucket_counts(key):
                le = 'le="%s"' % bound
                lines.append(f"{name}_bucket{_format_labels(key, le)} {count}")
            le_inf = 'le="+Inf"'
            lines.append(f"{name}_bucket{_format_labels(key, le_inf)} {stats['count']}")
            lines.append(f"{name}_count{_format_labels(key)} {stats['count']}")
            lines.append(f"{name}_sum{_format_labels(key)} {stats['sum']}")

    return "\n".join(lines) + "\n"
