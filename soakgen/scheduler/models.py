# soakgen/scheduler/models.py
from pydantic import BaseModel


class SchedulerStats(BaseModel):
    dispatched: int = 0
    missed: int = 0
    elapsed_seconds: float = 0.0
    stopped_early: bool = False

    @property
    def attempted(self) -> int:
        return self.dispatched + self.missed
