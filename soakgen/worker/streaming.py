# soakgen/worker/streaming.py
import asyncio
import json
import time
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List, Optional

from soakgen.log_handler import get_logger
from soakgen.transport import StreamChannel, StreamTransport, TransportError
from .exceptions import StreamStateError
from .models import FailureReason, OperationOutcome

if TYPE_CHECKING:
    from soakgen.metrics import SoakMetrics

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"


_TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.CONNECTING: frozenset({ConnectionState.AUTHENTICATED, ConnectionState.CLOSING}),
    ConnectionState.AUTHENTICATED: frozenset({ConnectionState.STREAMING, ConnectionState.CLOSING}),
    ConnectionState.STREAMING: frozenset({ConnectionState.CLOSING}),
    ConnectionState.CLOSING: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}


class StreamConnection:
    """Lifecycle of one held connection: connect, authenticate, stream, close."""

    def __init__(self):
        self.state = ConnectionState.CONNECTING
        self.history: List[ConnectionState] = [ConnectionState.CONNECTING]
        self.frames_received = 0
        self.frames_sent = 0
        self.error: Optional[str] = None

    @property
    def reached_streaming(self) -> bool:
        return ConnectionState.STREAMING in self.history

    def transition(self, new_state: ConnectionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise StreamStateError(f"Illegal transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: str) -> None:
        """Record an error and move towards CLOSING if not already there."""
        self.error = error
        if self.state not in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            self.transition(ConnectionState.CLOSING)


class StreamingExecutor:
    """
    Opens a connection per dispatch and holds it for `connection_seconds`.

    Latency covers connect plus the login handshake. The connection counts
    as successful when it reached STREAMING and closed without error.
    """

    def __init__(
        self,
        transport: StreamTransport,
        session_id: str,
        connection_seconds: float,
        message_interval: float,
        handshake_timeout: float = 30.0,
        metrics: Optional["SoakMetrics"] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.transport = transport
        self.session_id = session_id
        self.connection_seconds = connection_seconds
        self.message_interval = message_interval
        self.handshake_timeout = handshake_timeout
        self.metrics = metrics
        self.clock = clock

    async def run_once(self) -> OperationOutcome:
        try:
            outcome = await self.execute()
        except Exception as e:
            logger.error(f"Unexpected error during streaming connection: {str(e)}")
            outcome = OperationOutcome.failed(FailureReason.STREAM_ERROR, f"Unexpected error: {str(e)}")

        if self.metrics is not None:
            self.metrics.record(outcome)
        return outcome

    async def execute(self) -> OperationOutcome:
        connection = StreamConnection()
        channel: Optional[StreamChannel] = None
        latency_ms: Optional[float] = None

        start = self.clock()
        try:
            channel = await self.transport.connect()
            await channel.send_json({"type": "login", "sid": self.session_id})
            connection.frames_sent += 1

            ack = await channel.receive(timeout=self.handshake_timeout)
            if ack is None:
                connection.fail(f"No login acknowledgement within {self.handshake_timeout}s")
            else:
                latency_ms = (self.clock() - start) * 1000
                # A login rejection arrives as the first frame
                self._inspect_frame(ack)
                connection.transition(ConnectionState.AUTHENTICATED)
                connection.transition(ConnectionState.STREAMING)
                await self._stream(channel, connection)
                connection.transition(ConnectionState.CLOSING)
        except TransportError as e:
            connection.fail(str(e))
        finally:
            if channel is not None:
                try:
                    await channel.close()
                except TransportError as e:
                    logger.debug(f"Error closing stream channel: {str(e)}")
            if connection.state == ConnectionState.CLOSING:
                connection.transition(ConnectionState.CLOSED)

        if connection.error is not None or not connection.reached_streaming:
            detail = connection.error or "Connection never reached streaming state"
            logger.warning(f"Streaming connection failed: {detail}")
            return OperationOutcome.failed(
                FailureReason.STREAM_ERROR, detail, latency_ms=latency_ms
            )

        return OperationOutcome.succeeded(
            latency_ms=latency_ms, messages=connection.frames_received
        )

    async def _stream(self, channel: StreamChannel, connection: StreamConnection) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.connection_seconds
        next_heartbeat = loop.time() + self.message_interval

        while True:
            now = loop.time()
            if now >= deadline:
                return
            if now >= next_heartbeat:
                await channel.send_json(
                    {"type": "ping", "ts": datetime.now(timezone.utc).isoformat()}
                )
                connection.frames_sent += 1
                next_heartbeat += self.message_interval
                continue

            frame = await channel.receive(timeout=min(next_heartbeat, deadline) - now)
            if frame is not None:
                connection.frames_received += 1
                self._inspect_frame(frame)

    def _inspect_frame(self, frame: str) -> None:
        try:
            payload = json.loads(frame)
        except ValueError:
            return
        if isinstance(payload, dict) and payload.get("type") == "error":
            raise TransportError(f"Server reported error: {payload.get('message', frame)}")
