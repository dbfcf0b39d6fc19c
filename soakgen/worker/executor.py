# soakgen/worker/executor.py
import random
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from soakgen.auth import AuthProvider, Credential
from soakgen.log_handler import get_logger
from soakgen.transport import PublishResult, PublishTransport, TransportError
from .models import FailureReason, Operation, OperationOutcome
from .payload import PublishBatch, build_publish_batch, generate_message

if TYPE_CHECKING:
    from soakgen.metrics import SoakMetrics

logger = get_logger(__name__)

MAX_LOGGED_BODY = 200


def _truncate(text: str, limit: int = MAX_LOGGED_BODY) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


class PublishExecutor:
    """
    Carries out one batched publish per dispatch.

    Every step that can fail is turned into a failed OperationOutcome; the
    executor never lets an exception escape into the worker.
    """

    def __init__(
        self,
        batch_size: int,
        auth_provider: AuthProvider,
        transport: PublishTransport,
        metrics: Optional["SoakMetrics"] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.batch_size = batch_size
        self.auth_provider = auth_provider
        self.transport = transport
        self.metrics = metrics
        self.rng = rng or random.Random()
        self.clock = clock

    async def run_once(self) -> OperationOutcome:
        """Execute one operation and hand its outcome to the metrics aggregator."""
        try:
            outcome = await self.execute()
        except Exception as e:
            logger.error(f"Unexpected error during publish: {type(e).__name__}: {str(e)}")
            outcome = OperationOutcome.failed(
                FailureReason.TRANSPORT_ERROR, f"Unexpected error: {str(e)}"
            )

        if self.metrics is not None:
            self.metrics.record(outcome)
        return outcome

    async def execute(self) -> OperationOutcome:
        try:
            message = generate_message(rng=self.rng)
            batch = build_publish_batch(message, self.batch_size)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to build publish batch: {str(e)}")
            return OperationOutcome.failed(FailureReason.SERIALIZATION_ERROR, str(e))

        credential = await self._acquire_credential()
        if credential is None:
            logger.error("Failed to get access token")
            return OperationOutcome.failed(FailureReason.AUTH_UNAVAILABLE, "No credential available")

        operation = Operation(
            message=message,
            batch_size=batch.size,
            credential=credential,
            started_at=datetime.now(timezone.utc),
        )
        return await self._publish(operation, batch)

    async def _acquire_credential(self) -> Optional[Credential]:
        try:
            return await self.auth_provider.acquire()
        except Exception as e:
            logger.error(f"Credential provider raised {type(e).__name__}: {str(e)}")
            return None

    async def _publish(self, operation: Operation, batch: PublishBatch) -> OperationOutcome:
        # Timed from just before the call to just after the response body is read
        start = self.clock()
        try:
            result = await self.transport.publish(batch.body, operation.credential.token)
        except TransportError as e:
            logger.warning(f"Failed to publish message: {str(e)}")
            return OperationOutcome.failed(
                FailureReason.TRANSPORT_ERROR, str(e), payload_bytes=batch.message_bytes
            )
        latency_ms = (self.clock() - start) * 1000

        return self._validate(result, latency_ms, batch)

    def _validate(
        self, result: PublishResult, latency_ms: float, batch: PublishBatch
    ) -> OperationOutcome:
        failure: Optional[FailureReason] = None
        detail = ""

        if not result.status_ok:
            failure = FailureReason.BAD_STATUS
            detail = f"status {result.status}: {_truncate(result.body)}"
        elif result.accepted_count is None:
            failure = FailureReason.INVALID_RESPONSE
            detail = result.parse_error or "Unreadable publish response"
        elif result.accepted_count <= 0:
            failure = FailureReason.NO_ACCEPTED_MESSAGES
            detail = f"No message ids returned: {_truncate(result.body)}"

        if failure is not None:
            logger.warning(f"Failed to publish message: {detail}")
            return OperationOutcome.failed(
                failure, detail, latency_ms=latency_ms, payload_bytes=batch.message_bytes
            )

        return OperationOutcome.succeeded(
            latency_ms=latency_ms, messages=batch.size, payload_bytes=batch.message_bytes
        )
