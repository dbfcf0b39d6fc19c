import asyncio

import pytest

from soakgen.worker import PoolClosedError, WorkerPool, WorkerPoolError


@pytest.mark.asyncio
async def test_worker_pool_start():
    """Test worker pool initialization"""
    pool = WorkerPool(min_workers=2, max_workers=5)

    await pool.start()

    # Verify initial state
    assert len(pool.workers) == 2
    assert pool._is_initialized is True
    assert pool.get_stats()["idle_workers"] == 2

    # Clean up
    await pool.shutdown()
    assert pool._is_initialized is False
    assert len(pool.workers) == 0


@pytest.mark.asyncio
async def test_worker_pool_runs_jobs():
    pool = WorkerPool(min_workers=1, max_workers=1)
    await pool.start()
    done = []

    async def job():
        done.append(1)

    assert pool.try_dispatch(job) is True
    await asyncio.sleep(0.01)
    # The same worker is reused once idle
    assert pool.try_dispatch(job) is True
    await asyncio.sleep(0.01)

    assert done == [1, 1]
    assert pool.get_stats()["jobs_completed"] == 2
    await pool.shutdown()


@pytest.mark.asyncio
async def test_worker_pool_grows_to_max_then_refuses():
    """Test the pool spawns workers on demand and refuses beyond max_workers"""
    pool = WorkerPool(min_workers=1, max_workers=3)
    await pool.start()
    release = asyncio.Event()

    async def blocking_job():
        await release.wait()

    results = [pool.try_dispatch(blocking_job) for _ in range(4)]

    # Verify growth and refusal
    assert results == [True, True, True, False]
    assert len(pool.workers) == 3

    await asyncio.sleep(0.01)
    assert pool.busy_count == 3
    assert pool.get_stats()["peak_busy"] == 3

    release.set()
    abandoned = await pool.shutdown(grace_period=1.0)
    assert abandoned == 0


@pytest.mark.asyncio
async def test_worker_pool_shutdown_waits_for_in_flight():
    pool = WorkerPool(min_workers=1, max_workers=2)
    await pool.start()
    finished = []

    async def slow_job():
        await asyncio.sleep(0.05)
        finished.append(1)

    pool.try_dispatch(slow_job)
    abandoned = await pool.shutdown(grace_period=1.0)

    assert abandoned == 0
    assert finished == [1]


@pytest.mark.asyncio
async def test_worker_pool_abandons_after_grace_period():
    """Test operations still running after the grace period are abandoned"""
    pool = WorkerPool(min_workers=2, max_workers=2)
    abandoned_calls = []
    pool.on_abandoned = lambda: abandoned_calls.append(1)
    await pool.start()

    async def stuck_job():
        await asyncio.sleep(10)

    pool.try_dispatch(stuck_job)
    pool.try_dispatch(stuck_job)
    await asyncio.sleep(0.01)

    abandoned = await pool.shutdown(grace_period=0.05)

    # Verify each abandoned operation was reported once
    assert abandoned == 2
    assert len(abandoned_calls) == 2
    assert pool.stats["jobs_abandoned"] == 2
    assert len(pool.workers) == 0


@pytest.mark.asyncio
async def test_worker_survives_failing_job():
    pool = WorkerPool(min_workers=1, max_workers=1)
    await pool.start()

    async def broken_job():
        raise RuntimeError("boom")

    pool.try_dispatch(broken_job)
    await asyncio.sleep(0.01)

    assert pool.stats["jobs_failed"] == 1
    assert pool.try_dispatch(broken_job) is True
    await pool.shutdown()


@pytest.mark.asyncio
async def test_dispatch_requires_running_pool():
    pool = WorkerPool(min_workers=1, max_workers=1)

    async def job():
        pass

    with pytest.raises(PoolClosedError):
        pool.try_dispatch(job)

    await pool.start()
    await pool.shutdown()

    with pytest.raises(PoolClosedError):
        pool.try_dispatch(job)


@pytest.mark.parametrize("min_workers, max_workers", [(-1, 5), (0, 0), (6, 5)])
def test_invalid_pool_bounds(min_workers, max_workers):
    with pytest.raises(WorkerPoolError):
        WorkerPool(min_workers=min_workers, max_workers=max_workers)
