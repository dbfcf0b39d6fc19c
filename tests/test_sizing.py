import pytest

from soakgen.config import load_config
from soakgen.scheduler import compute_pool_sizing


@pytest.mark.parametrize(
    "target_rate, batch_size, min_workers, preallocated, max_workers",
    [
        (15000, 10, 500, 750, 1500),
        (100, 10, 5, 5, 10),
        (1000, 1, 10, 500, 1000),
        (15, 10, 1, 1, 2),
        (101, 10, 1, 6, 11),
    ],
)
def test_publish_sizing(target_rate, batch_size, min_workers, preallocated, max_workers):
    """Test pool bounds derived from the target rate and batch size"""
    config = load_config(target_rate=target_rate, batch_size=batch_size, min_workers=min_workers)

    sizing = compute_pool_sizing(config)

    assert sizing.preallocated == preallocated
    assert sizing.max_workers == max_workers
    assert sizing.operations_per_second == pytest.approx(target_rate / batch_size)


@pytest.mark.parametrize("target_rate", [1, 7, 99, 1000, 15000, 123457])
@pytest.mark.parametrize("batch_size", [1, 3, 10, 1000])
@pytest.mark.parametrize("min_workers", [1, 50, 500])
def test_sizing_bounds_hold(target_rate, batch_size, min_workers):
    """Test min_workers <= preallocated <= max_workers for any input"""
    config = load_config(target_rate=target_rate, batch_size=batch_size, min_workers=min_workers)

    sizing = compute_pool_sizing(config)

    assert min_workers <= sizing.preallocated <= sizing.max_workers
    assert sizing.max_workers >= 2 * min_workers


def test_sizing_is_deterministic():
    config = load_config(target_rate=1234, batch_size=7, min_workers=3)
    assert compute_pool_sizing(config) == compute_pool_sizing(config)


def test_stream_sizing():
    """Test stream mode sizes for connections held open concurrently"""
    config = load_config(
        mode="stream",
        ws_url="ws://localhost/ws",
        target_rate=10,
        connection_seconds=60,
        min_workers=50,
    )

    sizing = compute_pool_sizing(config)

    # 10 connections/s held for 60s
    assert sizing.max_workers == 600
    assert sizing.preallocated == 300
    assert sizing.operations_per_second == 10.0


def test_stream_sizing_respects_minimum():
    config = load_config(
        mode="stream",
        ws_url="ws://localhost/ws",
        target_rate=1,
        connection_seconds=5,
        min_workers=20,
    )

    sizing = compute_pool_sizing(config)

    assert sizing.preallocated == 20
    assert sizing.max_workers == 40
