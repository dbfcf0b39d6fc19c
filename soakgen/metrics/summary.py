# soakgen/metrics/summary.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .aggregator import MetricsSnapshot
from .thresholds import ThresholdResult

NOT_AVAILABLE = "N/A"


def _fmt(value: Optional[float], suffix: str = "", scale: float = 1.0) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value * scale:.2f}{suffix}"


class SoakSummary(BaseModel):
    """Structured end-of-run report."""

    mode: str = "publish"
    batch_size: int
    target_rate: float
    achieved_rate: Optional[float] = None
    goal_achievement_pct: Optional[float] = None
    total_sent: int
    total_operations: int
    failed_operations: int
    success_rate: Optional[float] = None
    avg_latency_ms: Optional[float] = None
    p50_latency_ms: Optional[float] = None
    p95_latency_ms: Optional[float] = None
    p99_latency_ms: Optional[float] = None
    avg_message_bytes: Optional[float] = None
    scheduling_misses: int = 0
    elapsed_seconds: float = 0.0
    failures_by_reason: Dict[str, int] = Field(default_factory=dict)
    thresholds: List[ThresholdResult] = Field(default_factory=list)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: MetricsSnapshot,
        target_rate: float,
        batch_size: int,
        mode: str = "publish",
        thresholds: Optional[List[ThresholdResult]] = None,
    ) -> "SoakSummary":
        # Streams are measured in connections, publishes in messages
        if mode == "stream":
            achieved = snapshot.operations_per_second
        else:
            achieved = snapshot.messages_per_second
        goal = achieved / target_rate * 100 if achieved is not None and target_rate else None

        return cls(
            mode=mode,
            batch_size=batch_size,
            target_rate=target_rate,
            achieved_rate=achieved,
            goal_achievement_pct=goal,
            total_sent=snapshot.messages_sent,
            total_operations=snapshot.total_operations,
            failed_operations=snapshot.failed_operations,
            success_rate=snapshot.success_rate,
            avg_latency_ms=snapshot.latency.avg,
            p50_latency_ms=snapshot.latency.p50,
            p95_latency_ms=snapshot.latency.p95,
            p99_latency_ms=snapshot.latency.p99,
            avg_message_bytes=snapshot.message_bytes.avg,
            scheduling_misses=snapshot.scheduling_misses,
            elapsed_seconds=snapshot.elapsed_seconds,
            failures_by_reason=dict(snapshot.failures_by_reason),
            thresholds=list(thresholds or []),
        )

    @property
    def thresholds_passed(self) -> bool:
        return all(result.passed for result in self.thresholds)

    def render(self) -> str:
        sent_label = "Total frames received" if self.mode == "stream" else "Total messages sent"
        unit = "CPS" if self.mode == "stream" else "RPS"
        workload = (
            "Mode: streaming connections"
            if self.mode == "stream"
            else f"Batch Size: {self.batch_size} messages per request"
        )
        lines = [
            "Soak Test Summary",
            "-----------------",
            workload,
            "Test Goals Achievement",
            "---------------------",
            f"Target {unit}: {self.target_rate:g}",
            f"Current {unit}: {_fmt(self.achieved_rate)}",
            f"Goal Achievement: {_fmt(self.goal_achievement_pct, '%')}",
            f"{sent_label}: {self.total_sent}",
            f"Failed operations: {self.failed_operations}",
            f"Scheduling misses: {self.scheduling_misses}",
            f"Success rate: {_fmt(self.success_rate, '%', scale=100)}",
            f"Average latency: {_fmt(self.avg_latency_ms, 'ms')}",
            f"P95 latency: {_fmt(self.p95_latency_ms, 'ms')}",
            f"P99 latency: {_fmt(self.p99_latency_ms, 'ms')}",
        ]

        if self.failures_by_reason:
            lines.append("Failures by reason:")
            for reason, count in sorted(self.failures_by_reason.items()):
                lines.append(f"  {reason}: {count}")

        if self.thresholds:
            lines.append("Thresholds:")
            for result in self.thresholds:
                verdict = "PASS" if result.passed else "FAIL"
                lines.append(f"  [{verdict}] {result.expression} (observed {_fmt(result.observed)})")

        if self.elapsed_seconds < 60:
            lines.append("")
            lines.append(
                "Note: For short test runs (under 1 minute), the rate calculation may not reach the target."
            )
        return "\n".join(lines)


class SoakResult(BaseModel):
    """What a run produced: a summary, or the reason the target was never exercised."""

    connection_successful: bool
    summary: Optional[SoakSummary] = None
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.connection_successful and self.summary is not None and self.summary.thresholds_passed

    def render(self) -> str:
        if not self.connection_successful or self.summary is None:
            detail = f": {self.error}" if self.error else ""
            return f"Connection unsuccessful - test did not run{detail}"
        return self.summary.render()
