# soakgen/scheduler/exceptions.py
class SchedulerError(Exception):
    """Base exception for scheduler errors"""
    pass


class SchedulerAlreadyRunningError(SchedulerError):
    """Raised when run() is called on a scheduler that is already dispatching"""
    pass
