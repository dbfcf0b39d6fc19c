import threading

import pytest

from soakgen.metrics import (
    Counter,
    MetricsSnapshot,
    Rate,
    SoakMetrics,
    Threshold,
    Trend,
    default_thresholds,
    evaluate_thresholds,
    rate_threshold,
)
from soakgen.worker import FailureReason, OperationOutcome


def test_trend_statistics():
    """Test avg and nearest-rank percentiles over a small sample"""
    trend = Trend("latency")
    for value in [10, 10, 10, 10, 200]:
        trend.add(value)

    snapshot = trend.snapshot()

    assert snapshot.count == 5
    assert snapshot.avg == pytest.approx(48.0)
    assert snapshot.minimum == 10
    assert snapshot.maximum == 200
    assert snapshot.p50 == 10
    assert snapshot.p95 == 200
    assert snapshot.p99 == 200
    assert trend.percentile(0) == 10


def test_empty_trend_reports_nothing():
    snapshot = Trend("latency").snapshot()

    assert snapshot.count == 0
    assert snapshot.avg is None
    assert snapshot.p95 is None
    assert snapshot.minimum is None


def test_trend_reservoir_is_bounded():
    """Test percentile memory stays bounded while totals stay exact"""
    trend = Trend("latency", reservoir_size=100, seed=3)
    for value in range(1, 10001):
        trend.add(value)

    snapshot = trend.snapshot()

    assert snapshot.count == 10000
    assert len(snapshot.samples) == 100
    assert snapshot.minimum == 1
    assert snapshot.maximum == 10000
    assert snapshot.avg == pytest.approx(5000.5)
    # Uniform sample of 1..10000
    assert 3000 < snapshot.p50 < 7000


def test_invalid_percentile():
    with pytest.raises(ValueError):
        Trend("latency").percentile(101)


def test_counter():
    counter = Counter("messages")
    counter.add(5)
    counter.add()

    assert counter.value == 6
    with pytest.raises(ValueError):
        counter.add(-1)


def test_rate():
    rate = Rate("success")
    assert rate.value is None

    for observation in (True, True, True, False):
        rate.add(observation)

    assert rate.value == 0.75
    assert rate.counts() == (3, 4)


def test_counter_is_thread_safe():
    counter = Counter("messages")

    def work():
        for _ in range(1000):
            counter.add(1)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter.value == 8000


def test_trend_and_rate_are_thread_safe():
    """Test concurrent writers leave exact totals, including once the reservoir is full"""
    trend = Trend("latency", reservoir_size=50, seed=1)
    rate = Rate("success")

    def work(worker_index):
        for value in range(1, 1001):
            trend.add(value)
            rate.add(worker_index % 2 == 0)

    threads = [threading.Thread(target=work, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = trend.snapshot()

    # Verify exact aggregates
    assert snapshot.count == 8000
    assert snapshot.total == 8 * sum(range(1, 1001))
    assert snapshot.minimum == 1
    assert snapshot.maximum == 1000
    assert len(snapshot.samples) == 50
    assert all(1 <= sample <= 1000 for sample in snapshot.samples)
    assert rate.counts() == (4000, 8000)
    assert rate.value == 0.5


def test_soak_metrics_record():
    """Test outcomes are folded into counters, rate and trends"""
    metrics = SoakMetrics()

    metrics.record(OperationOutcome.succeeded(latency_ms=12.0, messages=10, payload_bytes=300))
    metrics.record(OperationOutcome.succeeded(latency_ms=18.0, messages=10, payload_bytes=300))
    metrics.record(OperationOutcome.failed(FailureReason.BAD_STATUS, latency_ms=30.0))
    metrics.record(OperationOutcome.failed(FailureReason.AUTH_UNAVAILABLE))
    metrics.record_scheduling_miss()

    snapshot = metrics.snapshot()

    # Verify totals
    assert snapshot.messages_sent == 20
    assert snapshot.successful_operations == 2
    assert snapshot.total_operations == 4
    assert snapshot.failed_operations == 2
    assert snapshot.success_rate == 0.5
    # Verify latency only covers completed round trips
    assert snapshot.latency.count == 3
    assert snapshot.message_bytes.avg == 300
    # Verify scheduling misses are counted apart from operations
    assert snapshot.scheduling_misses == 1
    assert snapshot.failures_by_reason == {
        "bad-status": 1,
        "auth-unavailable": 1,
        "scheduling-capacity-exceeded": 1,
    }


def test_soak_metrics_without_operations():
    metrics = SoakMetrics()
    metrics.record_scheduling_miss()

    snapshot = metrics.snapshot()

    assert snapshot.total_operations == 0
    assert snapshot.success_rate is None
    assert snapshot.messages_per_second is None


def test_elapsed_window():
    metrics = SoakMetrics()
    assert metrics.elapsed_seconds == 0.0

    metrics.mark_started()
    metrics.mark_finished()
    elapsed = metrics.elapsed_seconds

    assert elapsed >= 0
    assert metrics.elapsed_seconds == elapsed


def make_snapshot(**overrides) -> MetricsSnapshot:
    trend = Trend("latency")
    for value in overrides.pop("latencies", [100.0]):
        trend.add(value)
    values = {
        "messages_sent": 1000,
        "successful_operations": 100,
        "total_operations": 100,
        "failed_operations": 0,
        "scheduling_misses": 0,
        "elapsed_seconds": 10.0,
        "latency": trend.snapshot(),
        "message_bytes": Trend("bytes").snapshot(),
    }
    values.update(overrides)
    return MetricsSnapshot(**values)


def test_snapshot_rates():
    snapshot = make_snapshot()

    assert snapshot.messages_per_second == 100.0
    assert snapshot.operations_per_second == 10.0


def test_default_thresholds_pass():
    results = evaluate_thresholds(make_snapshot(), default_thresholds())

    assert [result.passed for result in results] == [True, True]
    assert results[0].expression == "success_rate > 0.95"
    assert results[1].expression == "p95_latency_ms < 2000"


def test_default_thresholds_fail():
    """Test failing objectives are reported with the observed value"""
    snapshot = make_snapshot(successful_operations=90, latencies=[2500.0])

    results = evaluate_thresholds(snapshot, default_thresholds())

    assert [result.passed for result in results] == [False, False]
    assert results[0].observed == pytest.approx(0.9)
    assert results[1].observed == 2500.0


def test_threshold_without_data_fails():
    snapshot = make_snapshot(successful_operations=0, total_operations=0, latencies=[])

    results = evaluate_thresholds(snapshot, default_thresholds())

    assert all(result.observed is None for result in results)
    assert not any(result.passed for result in results)


def test_rate_threshold():
    threshold = rate_threshold(target_rate=100)

    assert threshold.expression == "achieved_rate >= 95"
    assert threshold.evaluate(make_snapshot()).passed
    assert not threshold.evaluate(make_snapshot(messages_sent=900)).passed


def test_invalid_comparator():
    with pytest.raises(ValueError):
        Threshold(metric="x", comparator="==", limit=1, extract=lambda snapshot: 1)


def test_metric_names():
    metrics = SoakMetrics()

    assert metrics.messages_sent.name == "pubsub_messages_sent"
    assert metrics.failed_operations.name == "pubsub_failed_publishes"
    assert metrics.success_rate.name == "pubsub_publish_success_rate"
    assert metrics.latency.name == "pubsub_publish_latency"
    assert metrics.message_bytes.name == "pubsub_message_bytes"
    assert SoakMetrics(prefix="stream").messages_sent.name == "stream_messages_sent"
