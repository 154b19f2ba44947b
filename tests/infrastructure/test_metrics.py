"""Tests for the in-process metrics registry."""

import pytest

from bidhouse.infrastructure.observability import metrics
from bidhouse.infrastructure.observability.metrics import (
    Timer, format_prometheus, get_metrics_summary, get_registry,
    increment_counter, observe_histogram, record_bid, record_broadcast)


@pytest.fixture(autouse=True)
def clean_registry():
    get_registry().reset()
    yield
    get_registry().reset()


def test_counter_per_label_set():
    record_bid("admitted")
    record_bid("admitted")
    record_bid("bid_too_low")

    counter = get_registry().counter(metrics.BIDS)
    assert counter.get({"outcome": "admitted"}) == 2
    assert counter.get({"outcome": "bid_too_low"}) == 1
    assert counter.get({"outcome": "conflict"}) == 0


def test_broadcast_counts_by_value():
    record_broadcast("delivered", 3)
    assert get_registry().counter(metrics.BROADCASTS).get({"status": "delivered"}) == 3


def test_histogram_stats_and_timer():
    observe_histogram("work_seconds", 0.2)
    observe_histogram("work_seconds", 0.4)
    with Timer("work_seconds"):
        pass

    stats = get_registry().histogram("work_seconds").get_stats()
    assert stats["count"] == 3
    assert stats["sum"] >= 0.6


def test_summary_and_prometheus_format():
    increment_counter("things_total", labels={"kind": "a"}, help_text="Things")
    observe_histogram("latency_seconds", 0.02)

    summary = get_metrics_summary()
    assert summary["counters"]["things_total"] == {"kind=a": 1.0}
    assert summary["histograms"]["latency_seconds"]["default"]["count"] == 1

    text = format_prometheus()
    assert "# HELP things_total Things" in text
    assert 'things_total{kind="a"} 1.0' in text
    assert "# TYPE latency_seconds histogram" in text
    assert 'latency_seconds_bucket{le="0.025"} 1' in text
    assert 'latency_seconds_bucket{le="0.01"} 0' in text
    assert 'latency_seconds_bucket{le="+Inf"} 1' in text
    assert "latency_seconds_count 1" in text
