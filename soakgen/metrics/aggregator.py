# soakgen/metrics/aggregator.py
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from soakgen.log_handler import get_logger
from soakgen.worker.models import FailureReason, OperationOutcome
from .primitives import Counter, Rate, Trend, TrendSnapshot, DEFAULT_RESERVOIR_SIZE

logger = get_logger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Every aggregate of a run, read at a single point."""

    messages_sent: int
    successful_operations: int
    total_operations: int
    failed_operations: int
    scheduling_misses: int
    elapsed_seconds: float
    latency: TrendSnapshot
    message_bytes: TrendSnapshot
    failures_by_reason: Dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> Optional[float]:
        if self.total_operations == 0:
            return None
        return self.successful_operations / self.total_operations

    @property
    def messages_per_second(self) -> Optional[float]:
        if self.elapsed_seconds <= 0:
            return None
        return self.messages_sent / self.elapsed_seconds

    @property
    def operations_per_second(self) -> Optional[float]:
        if self.elapsed_seconds <= 0:
            return None
        return self.successful_operations / self.elapsed_seconds


class SoakMetrics:
    """
    Per-run metrics aggregator.

    Each primitive guards itself with its own lock, so concurrent workers
    only contend when they touch the same metric. Create one instance per
    run and read it once through snapshot() at teardown.
    """

    def __init__(self, reservoir_size: int = DEFAULT_RESERVOIR_SIZE, prefix: str = "pubsub"):
        self.messages_sent = Counter(f"{prefix}_messages_sent")
        self.failed_operations = Counter(f"{prefix}_failed_publishes")
        self.scheduling_misses = Counter("scheduling_capacity_exceeded")
        self.success_rate = Rate(f"{prefix}_publish_success_rate")
        self.latency = Trend(f"{prefix}_publish_latency", reservoir_size=reservoir_size)
        self.message_bytes = Trend(f"{prefix}_message_bytes", reservoir_size=reservoir_size)
        # Pre-created so recording never mutates the mapping itself
        self.failures_by_reason: Dict[FailureReason, Counter] = {
            reason: Counter(f"failures_{reason.value}") for reason in FailureReason
        }
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None

    def mark_started(self) -> None:
        self._started_at = time.monotonic()
        self._finished_at = None

    def mark_finished(self) -> None:
        if self._started_at is None:
            return
        self._finished_at = time.monotonic()

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at

    def record(self, outcome: OperationOutcome) -> None:
        """Fold one operation outcome into the aggregates."""
        self.success_rate.add(outcome.success)
        if outcome.latency_ms is not None:
            self.latency.add(outcome.latency_ms)
        if outcome.payload_bytes:
            self.message_bytes.add(outcome.payload_bytes)

        if outcome.success:
            self.messages_sent.add(outcome.messages)
        else:
            self.failed_operations.add(1)
            self.failures_by_reason[outcome.reason].add(1)

    def record_scheduling_miss(self) -> None:
        self.scheduling_misses.add(1)
        self.failures_by_reason[FailureReason.SCHEDULING_CAPACITY_EXCEEDED].add(1)

    def snapshot(self) -> MetricsSnapshot:
        # Success and total come from one locked read so the rate is never torn
        successful, total = self.success_rate.counts()
        snapshot = MetricsSnapshot(
            messages_sent=self.messages_sent.value,
            successful_operations=successful,
            total_operations=total,
            failed_operations=self.failed_operations.value,
            scheduling_misses=self.scheduling_misses.value,
            elapsed_seconds=self.elapsed_seconds,
            latency=self.latency.snapshot(),
            message_bytes=self.message_bytes.snapshot(),
            failures_by_reason={
                reason.value: counter.value
                for reason, counter in self.failures_by_reason.items()
                if counter.value
            },
        )
        logger.debug(f"Metrics snapshot: {snapshot.total_operations} operations")
        return snapshot
