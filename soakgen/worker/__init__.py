"""Worker module for the soak test engine.

Bounded asyncio worker pool plus the executors that carry out one
dispatched operation each.
"""

from .pool import WorkerPool
from .executor import PublishExecutor
from .streaming import StreamingExecutor, StreamConnection, ConnectionState
from .payload import generate_message, build_publish_batch, PublishBatch
from .models import FailureReason, Operation, OperationOutcome
from .exceptions import WorkerError, WorkerPoolError, PoolClosedError, StreamStateError

__all__ = [
    "WorkerPool",
    "PublishExecutor",
    "StreamingExecutor",
    "StreamConnection",
    "ConnectionState",
    "generate_message",
    "build_publish_batch",
    "PublishBatch",
    "FailureReason",
    "Operation",
    "OperationOutcome",
    "WorkerError",
    "WorkerPoolError",
    "PoolClosedError",
    "StreamStateError",
]
