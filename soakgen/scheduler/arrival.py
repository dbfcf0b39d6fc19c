# soakgen/scheduler/arrival.py
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class ArrivalSchedule:
    """
    Constant arrival rate with an optional linear ramp from zero.

    During the ramp the instantaneous rate grows as rate * t / ramp_up, so
    the cumulative number of dispatches is rate * t^2 / (2 * ramp_up); after
    it the schedule advances at the full rate.
    """

    rate: float  # operations per second
    ramp_up: float = 0.0  # seconds

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"Arrival rate must be positive, got {self.rate}")
        if self.ramp_up < 0:
            raise ValueError(f"Ramp-up must not be negative, got {self.ramp_up}")

    @property
    def ramp_dispatches(self) -> float:
        """Number of dispatches issued while ramping."""
        return self.rate * self.ramp_up / 2

    def rate_at(self, elapsed: float) -> float:
        """Effective target rate at the given offset."""
        if elapsed < 0:
            return 0.0
        if self.ramp_up and elapsed < self.ramp_up:
            return self.rate * elapsed / self.ramp_up
        return self.rate

    def cumulative(self, elapsed: float) -> float:
        """Expected dispatch count by the given offset."""
        if elapsed <= 0:
            return 0.0
        if self.ramp_up and elapsed < self.ramp_up:
            return self.rate * elapsed * elapsed / (2 * self.ramp_up)
        return self.ramp_dispatches + self.rate * (elapsed - self.ramp_up)

    def offset_of(self, index: int) -> float:
        """Seconds after start at which dispatch number `index` (from 0) is due."""
        if index < 0:
            raise ValueError("Dispatch index must not be negative")
        if self.ramp_up and index < self.ramp_dispatches:
            return math.sqrt(2 * self.ramp_up * index / self.rate)
        return self.ramp_up + (index - self.ramp_dispatches) / self.rate

    def dispatches_within(self, duration: float) -> int:
        """How many dispatches fall due strictly before `duration`."""
        return math.ceil(self.cumulative(duration))
