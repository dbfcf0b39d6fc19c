# soakgen/scheduler/__init__.py
from .scheduler import RateScheduler
from .arrival import ArrivalSchedule
from .sizing import WorkerPoolSizing, compute_pool_sizing
from .models import SchedulerStats
from .exceptions import SchedulerError, SchedulerAlreadyRunningError

__all__ = [
    'RateScheduler',
    'ArrivalSchedule',
    'WorkerPoolSizing',
    'compute_pool_sizing',
    'SchedulerStats',
    'SchedulerError',
    'SchedulerAlreadyRunningError'
]
