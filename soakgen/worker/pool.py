# soakgen/worker/pool.py
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from soakgen.log_handler import get_logger
from .exceptions import PoolClosedError, WorkerPoolError

logger = get_logger(__name__)

Job = Callable[[], Awaitable[Any]]


class WorkerPool:
    """
    Bounded pool of asyncio workers executing dispatched operations.

    The pool starts with `min_workers` idle workers and spawns more on demand
    up to `max_workers`. It never queues work for a busy worker: a dispatch
    either lands on an idle (or freshly spawned) worker or is refused.
    """

    def __init__(self, min_workers: int = 1, max_workers: int = 10, name: str = "worker"):
        if min_workers < 0 or max_workers < 1 or min_workers > max_workers:
            raise WorkerPoolError(
                f"Invalid pool bounds: min_workers={min_workers}, max_workers={max_workers}"
            )
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.name = name
        self.workers: Dict[str, asyncio.Task] = {}
        self.on_abandoned: Optional[Callable[[], None]] = None
        self.stats = {"jobs_completed": 0, "jobs_failed": 0, "jobs_abandoned": 0, "peak_busy": 0}
        self._queue: asyncio.Queue = asyncio.Queue()
        self._busy: Set[str] = set()
        # Workers waiting for a job, minus jobs already handed out to them
        self._idle = 0
        self._is_initialized = False
        self._is_shutting_down = False

    @property
    def busy_count(self) -> int:
        return len(self._busy)

    async def start(self) -> None:
        """Spawn the preallocated workers."""
        if self._is_initialized:
            logger.warning("Worker pool already initialized")
            return

        for _ in range(self.min_workers):
            self._spawn_worker()

        self._is_initialized = True
        self._is_shutting_down = False
        logger.info(
            f"Worker pool started with {self.min_workers} workers (max {self.max_workers})"
        )

    def try_dispatch(self, job: Job) -> bool:
        """Hand a job to an idle worker, growing the pool if needed."""
        if not self._is_initialized or self._is_shutting_down:
            raise PoolClosedError("Worker pool is not accepting work")

        if self._idle <= 0:
            if len(self.workers) >= self.max_workers:
                return False
            self._spawn_worker()

        self._idle -= 1
        self._queue.put_nowait(job)
        return True

    async def shutdown(self, grace_period: float = 30.0) -> int:
        """
        Stop accepting work and let in-flight jobs finish.

        Jobs still running after `grace_period` seconds are cancelled and
        reported through `on_abandoned`. Returns the number abandoned.
        """
        if not self._is_initialized or self._is_shutting_down:
            return 0

        self._is_shutting_down = True
        in_flight = self.busy_count + self._queue.qsize()
        logger.info(
            f"Shutting down worker pool with {len(self.workers)} workers, {in_flight} in flight"
        )

        abandoned = 0
        if in_flight:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=grace_period)
            except asyncio.TimeoutError:
                abandoned = self.busy_count + self._queue.qsize()
                logger.warning(
                    f"{abandoned} operations still running after {grace_period}s grace period"
                )

        for task in self.workers.values():
            task.cancel()
        await asyncio.gather(*self.workers.values(), return_exceptions=True)

        self.stats["jobs_abandoned"] += abandoned
        if self.on_abandoned is not None:
            for _ in range(abandoned):
                self.on_abandoned()

        self.workers.clear()
        self._busy.clear()
        self._idle = 0
        self._is_initialized = False
        logger.info("Worker pool shutdown complete")
        return abandoned

    def get_stats(self) -> Dict[str, Any]:
        """Get pool statistics."""
        return {
            "worker_count": len(self.workers),
            "busy_workers": self.busy_count,
            "idle_workers": max(self._idle, 0),
            "max_workers": self.max_workers,
            **self.stats,
        }

    def _spawn_worker(self) -> None:
        self._idle += 1
        worker_id = f"{self.name}-{len(self.workers) + 1}"
        self.workers[worker_id] = asyncio.create_task(
            self._worker_loop(worker_id), name=worker_id
        )
        if self._is_initialized:
            logger.debug(f"Grew worker pool to {len(self.workers)} workers")

    async def _worker_loop(self, worker_id: str) -> None:
        while True:
            job = await self._queue.get()
            self._busy.add(worker_id)
            self.stats["peak_busy"] = max(self.stats["peak_busy"], len(self._busy))
            try:
                await job()
                self.stats["jobs_completed"] += 1
            except Exception as e:
                # Operations report their own failures; anything reaching here is a bug
                self.stats["jobs_failed"] += 1
                logger.error(f"Worker {worker_id} job raised {type(e).__name__}: {str(e)}")
            finally:
                self._busy.discard(worker_id)
                self._idle += 1
                self._queue.task_done()
