# soakgen/worker/exceptions.py

class WorkerError(Exception):
    """Base exception for worker operations"""
    pass


class WorkerPoolError(WorkerError):
    """Raised when the worker pool is misconfigured or misused"""
    pass


class PoolClosedError(WorkerPoolError):
    """Raised when dispatching to a pool that is not running"""
    pass


class StreamStateError(WorkerError):
    """Raised on an illegal streaming connection state transition"""
    pass
