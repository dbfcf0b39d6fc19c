# soakgen/scheduler/sizing.py
import math
from dataclasses import dataclass

from soakgen.config import SoakTestConfig, LoadMode
from soakgen.log_handler import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkerPoolSizing:
    preallocated: int
    max_workers: int
    operations_per_second: float  # dispatch rate at full load


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def compute_pool_sizing(config: SoakTestConfig) -> WorkerPoolSizing:
    """
    Derive worker pool bounds from the target rate and per-operation cost.

    Publish mode sends batch_size messages per operation, so the operation
    rate is target_rate / batch_size. Stream mode holds each connection open
    for connection_seconds, which sets the steady-state concurrency.
    """
    if config.mode == LoadMode.STREAM:
        concurrent = math.ceil(config.target_rate * config.connection_seconds)
        preallocated = max(config.min_workers, _ceil_div(concurrent, 2))
        max_workers = max(config.min_workers * 2, concurrent)
        operations_per_second = float(config.target_rate)
    else:
        preallocated = max(
            config.min_workers, _ceil_div(config.target_rate, config.batch_size * 2)
        )
        max_workers = max(
            config.min_workers * 2, _ceil_div(config.target_rate, config.batch_size)
        )
        operations_per_second = config.target_rate / config.batch_size

    sizing = WorkerPoolSizing(
        preallocated=preallocated,
        max_workers=max_workers,
        operations_per_second=operations_per_second,
    )
    logger.debug(f"Computed pool sizing: {sizing}")
    return sizing
