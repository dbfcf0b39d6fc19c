# soakgen/metrics/primitives.py
import math
import random
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

DEFAULT_RESERVOIR_SIZE = 100_000


class Counter:
    """Monotonically increasing total."""

    def __init__(self, name: str):
        self.name = name
        self._value = 0
        self._lock = threading.Lock()

    def add(self, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError(f"Counter {self.name} cannot decrease (got {amount})")
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class Rate:
    """Fraction of boolean observations that were true."""

    def __init__(self, name: str):
        self.name = name
        self._true_count = 0
        self._total = 0
        self._lock = threading.Lock()

    def add(self, observation: bool) -> None:
        with self._lock:
            self._total += 1
            if observation:
                self._true_count += 1

    def counts(self) -> Tuple[int, int]:
        """(true observations, total observations) read together."""
        with self._lock:
            return self._true_count, self._total

    @property
    def value(self) -> Optional[float]:
        true_count, total = self.counts()
        if total == 0:
            return None
        return true_count / total


@dataclass(frozen=True)
class TrendSnapshot:
    count: int
    total: float
    minimum: Optional[float]
    maximum: Optional[float]
    samples: Tuple[float, ...]  # sorted

    @property
    def avg(self) -> Optional[float]:
        if self.count == 0:
            return None
        return self.total / self.count

    def percentile(self, pct: float) -> Optional[float]:
        """Nearest-rank percentile over the retained samples."""
        if not 0 <= pct <= 100:
            raise ValueError(f"Percentile must be within [0, 100], got {pct}")
        if not self.samples:
            return None
        rank = math.ceil(pct / 100 * len(self.samples))
        return self.samples[max(rank, 1) - 1]

    @property
    def p50(self) -> Optional[float]:
        return self.percentile(50)

    @property
    def p95(self) -> Optional[float]:
        return self.percentile(95)

    @property
    def p99(self) -> Optional[float]:
        return self.percentile(99)


class Trend:
    """
    Streaming numeric distribution.

    Count, sum, min and max are exact. Percentiles come from a uniform
    reservoir sample, which is the full data set until `reservoir_size`
    observations have been seen, so memory stays bounded on long runs.
    """

    def __init__(
        self,
        name: str,
        reservoir_size: int = DEFAULT_RESERVOIR_SIZE,
        seed: Optional[int] = None,
    ):
        if reservoir_size < 1:
            raise ValueError("Reservoir size must be at least 1")
        self.name = name
        self.reservoir_size = reservoir_size
        self._count = 0
        self._total = 0.0
        self._min: Optional[float] = None
        self._max: Optional[float] = None
        self._samples: List[float] = []
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def add(self, value: float) -> None:
        value = float(value)
        with self._lock:
            self._count += 1
            self._total += value
            if self._min is None or value < self._min:
                self._min = value
            if self._max is None or value > self._max:
                self._max = value

            if len(self._samples) < self.reservoir_size:
                self._samples.append(value)
            else:
                slot = self._rng.randrange(self._count)
                if slot < self.reservoir_size:
                    self._samples[slot] = value

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def percentile(self, pct: float) -> Optional[float]:
        return self.snapshot().percentile(pct)

    def snapshot(self) -> TrendSnapshot:
        with self._lock:
            samples = tuple(sorted(self._samples))
            return TrendSnapshot(
                count=self._count,
                total=self._total,
                minimum=self._min,
                maximum=self._max,
                samples=samples,
            )
