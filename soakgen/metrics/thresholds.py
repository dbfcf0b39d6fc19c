# soakgen/metrics/thresholds.py
import operator
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import BaseModel

from .aggregator import MetricsSnapshot

_COMPARATORS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Threshold:
    metric: str
    comparator: str
    limit: float
    extract: Callable[[MetricsSnapshot], Optional[float]]

    def __post_init__(self):
        if self.comparator not in _COMPARATORS:
            raise ValueError(f"Unsupported comparator: {self.comparator}")

    @property
    def expression(self) -> str:
        return f"{self.metric} {self.comparator} {self.limit:g}"

    def evaluate(self, snapshot: MetricsSnapshot) -> "ThresholdResult":
        observed = self.extract(snapshot)
        # No samples means the objective could not be demonstrated
        passed = observed is not None and _COMPARATORS[self.comparator](observed, self.limit)
        return ThresholdResult(expression=self.expression, observed=observed, passed=passed)


class ThresholdResult(BaseModel):
    expression: str
    observed: Optional[float] = None
    passed: bool


def default_thresholds() -> List[Threshold]:
    """Service-level objectives checked at the end of every run."""
    return [
        Threshold(
            metric="success_rate",
            comparator=">",
            limit=0.95,
            extract=lambda snapshot: snapshot.success_rate,
        ),
        Threshold(
            metric="p95_latency_ms",
            comparator="<",
            limit=2000,
            extract=lambda snapshot: snapshot.latency.p95,
        ),
    ]


def rate_threshold(
    target_rate: float,
    fraction: float = 0.95,
    extract: Optional[Callable[[MetricsSnapshot], Optional[float]]] = None,
) -> Threshold:
    """Require the achieved rate (messages per second by default) to reach a share of the target."""
    return Threshold(
        metric="achieved_rate",
        comparator=">=",
        limit=target_rate * fraction,
        extract=extract or (lambda snapshot: snapshot.messages_per_second),
    )


def evaluate_thresholds(
    snapshot: MetricsSnapshot, thresholds: List[Threshold]
) -> List[ThresholdResult]:
    return [threshold.evaluate(snapshot) for threshold in thresholds]
