# soakgen/scheduler/scheduler.py
import asyncio
from typing import Any, Awaitable, Callable, Optional

from soakgen.log_handler import get_logger
from .arrival import ArrivalSchedule
from .exceptions import SchedulerAlreadyRunningError
from .models import SchedulerStats

logger = get_logger(__name__)


class RateScheduler:
    """
    Issues operation start signals at a constant arrival rate.

    The scheduler never waits for a worker: if the pool is saturated when a
    dispatch falls due, the tick is dropped and reported through `on_miss`,
    so the offered load stays fixed regardless of target latency.
    """

    def __init__(
        self,
        schedule: ArrivalSchedule,
        duration: float,
        pool: Any,
        job: Callable[[], Awaitable[Any]],
        on_miss: Optional[Callable[[], None]] = None,
        progress_interval: float = 10.0,
    ):
        self.schedule = schedule
        self.duration = duration
        self.pool = pool
        self.job = job
        self.on_miss = on_miss
        self.progress_interval = progress_interval
        self.stats = SchedulerStats()
        self.running = False
        # Set by stop(); never cleared, so a stop before run() still counts
        self._stop_requested = False
        self._stop_event = asyncio.Event()
        logger.info(
            f"RateScheduler initialized: {schedule.rate:.2f} ops/s for {duration}s "
            f"(ramp-up {schedule.ramp_up}s)"
        )

    async def run(self) -> SchedulerStats:
        """Dispatch operations until the duration elapses or stop() is called."""
        if self.running:
            raise SchedulerAlreadyRunningError("Scheduler is already running")
        if self._stop_requested:
            logger.info("Scheduler stopped before dispatch began")
            self.stats.stopped_early = True
            return self.stats

        self.running = True
        self._stop_event.clear()
        loop = asyncio.get_running_loop()
        start = loop.time()
        next_report = self.progress_interval
        index = 0

        try:
            while self.running:
                offset = self.schedule.offset_of(index)
                if offset >= self.duration:
                    break

                # Late dispatches go out immediately so the long-run rate holds
                delay = start + offset - loop.time()
                if delay > 0 and await self._stopped_within(delay):
                    self.stats.stopped_early = True
                    break

                self._dispatch()
                index += 1

                elapsed = loop.time() - start
                if elapsed >= next_report:
                    logger.info(
                        f"[{int(elapsed):>5d}s] target_rate={self.schedule.rate_at(elapsed):.1f} ops/s "
                        f"dispatched={self.stats.dispatched} missed={self.stats.missed}"
                    )
                    next_report += self.progress_interval

            # Hold until the end of the window so rates are measured over the full duration
            if self.running and not self.stats.stopped_early:
                remaining = start + self.duration - loop.time()
                if remaining > 0 and await self._stopped_within(remaining):
                    self.stats.stopped_early = True
        finally:
            self.running = False
            self.stats.elapsed_seconds = loop.time() - start

        logger.info(
            f"Dispatch finished after {self.stats.elapsed_seconds:.1f}s: "
            f"{self.stats.dispatched} dispatched, {self.stats.missed} missed"
        )
        return self.stats

    def stop(self) -> None:
        """Stop dispatching; in-flight operations are left to the pool."""
        if self.running:
            logger.info("Stopping rate scheduler")
        self._stop_requested = True
        self.running = False
        self._stop_event.set()

    def _dispatch(self) -> None:
        if self.pool.try_dispatch(self.job):
            self.stats.dispatched += 1
            return

        self.stats.missed += 1
        if self.stats.missed == 1 or self.stats.missed % 1000 == 0:
            logger.warning(
                f"Worker pool saturated, dropped dispatch (total missed: {self.stats.missed})"
            )
        if self.on_miss is not None:
            self.on_miss()

    async def _stopped_within(self, delay: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False
