# soakgen/main.py
import asyncio
import signal
import sys
from dataclasses import dataclass
from typing import List, Optional

from soakgen.auth import AuthProvider, Credential, build_auth_provider
from soakgen.config import ConfigurationError, LoadMode, SoakTestConfig, format_duration
from soakgen.log_handler import get_logger, setup_logging_from_env, shutdown_logging
from soakgen.metrics import (
    SoakMetrics,
    SoakResult,
    SoakSummary,
    Threshold,
    default_thresholds,
    evaluate_thresholds,
    rate_threshold,
)
from soakgen.scheduler import ArrivalSchedule, RateScheduler, SchedulerStats, compute_pool_sizing
from soakgen.transport import (
    PublishTransport,
    PubSubRestTransport,
    StreamTransport,
    TransportError,
    WebSocketTransport,
)
from soakgen.worker import (
    FailureReason,
    OperationOutcome,
    PublishExecutor,
    StreamingExecutor,
    WorkerPool,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONNECTION_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_THRESHOLDS_FAILED = 99


@dataclass
class SetupState:
    connection_successful: bool
    credential: Optional[Credential] = None
    error: Optional[str] = None


class SoakTest:
    """
    Lifecycle of one soak run: setup, rate-controlled run, teardown.

    Transports, the auth provider and the metrics aggregator can be injected;
    anything not supplied is built from the configuration and closed when
    the run ends.
    """

    def __init__(
        self,
        config: SoakTestConfig,
        transport: Optional[PublishTransport] = None,
        auth_provider: Optional[AuthProvider] = None,
        stream_transport: Optional[StreamTransport] = None,
        metrics: Optional[SoakMetrics] = None,
        progress_interval: float = 10.0,
    ):
        self.config = config
        self.sizing = compute_pool_sizing(config)
        self.is_stream = config.mode == LoadMode.STREAM
        self.metrics = metrics or SoakMetrics(prefix="stream" if self.is_stream else "pubsub")
        self.transport = transport
        self.auth_provider = auth_provider
        self.stream_transport = stream_transport
        self.progress_interval = progress_interval
        self.pool: Optional[WorkerPool] = None
        self.scheduler: Optional[RateScheduler] = None
        self.scheduler_stats: Optional[SchedulerStats] = None
        self._owned_resources: List = []
        self._stop_requested = False

    async def execute(self) -> SoakResult:
        """Run setup, the load phase and teardown, always releasing resources."""
        logger.info(
            f"Starting soak test: mode={self.config.mode.value}, target_rate={self.config.target_rate}, "
            f"duration={format_duration(self.config.duration)}, workers={self.sizing.preallocated}-{self.sizing.max_workers}"
        )
        self._build_dependencies()
        try:
            state = await self.setup()
            if not state.connection_successful:
                logger.error("Test did not run properly due to connection issues")
                return SoakResult(connection_successful=False, error=state.error)

            await self.run()
            return self.teardown()
        finally:
            await self._close_resources()

    async def setup(self) -> SetupState:
        """Fast-fail precondition check before any worker is dispatched."""
        if self.is_stream:
            return await self._setup_stream()
        return await self._setup_publish()

    async def run(self) -> SchedulerStats:
        """Dispatch operations at the target rate, then drain the pool."""
        self.pool = WorkerPool(
            min_workers=self.sizing.preallocated, max_workers=self.sizing.max_workers
        )
        self.pool.on_abandoned = self._record_abandoned
        executor = self._build_executor()
        schedule = ArrivalSchedule(
            rate=self.sizing.operations_per_second, ramp_up=self.config.ramp_up
        )
        logger.info(
            f"Expecting {schedule.dispatches_within(self.config.duration)} dispatches over "
            f"{format_duration(self.config.duration)} (ramp-up {format_duration(self.config.ramp_up)})"
        )

        self.scheduler = RateScheduler(
            schedule=schedule,
            duration=self.config.duration,
            pool=self.pool,
            job=executor.run_once,
            on_miss=self.metrics.record_scheduling_miss,
            progress_interval=self.progress_interval,
        )

        await self.pool.start()
        self.metrics.mark_started()
        try:
            if self._stop_requested:
                self.scheduler.stop()
            self.scheduler_stats = await self.scheduler.run()
        finally:
            self.metrics.mark_finished()
            await self.pool.shutdown(grace_period=self.config.grace_period)

        logger.info(f"Worker pool stats: {self.pool.get_stats()}")
        return self.scheduler_stats

    def teardown(self) -> SoakResult:
        """Read the aggregates once and build the summary."""
        snapshot = self.metrics.snapshot()
        results = evaluate_thresholds(snapshot, self._thresholds())
        summary = SoakSummary.from_snapshot(
            snapshot,
            target_rate=self.config.target_rate,
            batch_size=self.config.batch_size,
            mode=self.config.mode.value,
            thresholds=results,
        )

        for result in results:
            if not result.passed:
                logger.warning(f"Threshold failed: {result.expression} (observed {result.observed})")
        return SoakResult(connection_successful=True, summary=summary)

    def stop(self) -> None:
        """Stop dispatching early; teardown still reports what was collected."""
        self._stop_requested = True
        if self.scheduler is not None:
            self.scheduler.stop()

    def _thresholds(self) -> List[Threshold]:
        if self.config.disable_thresholds:
            return []
        thresholds = default_thresholds()
        if self.config.enforce_rate_threshold:
            if self.is_stream:
                thresholds.append(
                    rate_threshold(
                        self.config.target_rate,
                        extract=lambda snapshot: snapshot.operations_per_second,
                    )
                )
            else:
                thresholds.append(rate_threshold(self.config.target_rate))
        return thresholds

    def _build_dependencies(self) -> None:
        if self.is_stream:
            if self.stream_transport is None:
                self.stream_transport = WebSocketTransport(
                    self.config.ws_url,
                    timeout=self.config.request_timeout,
                    max_connections=self.sizing.max_workers,
                )
                self._owned_resources.append(self.stream_transport)
            return

        if self.auth_provider is None:
            self.auth_provider = build_auth_provider(self.config)
            self._owned_resources.append(self.auth_provider)
        if self.transport is None:
            self.transport = PubSubRestTransport.from_config(
                self.config, max_connections=self.sizing.max_workers
            )
            self._owned_resources.append(self.transport)

    def _build_executor(self):
        if self.is_stream:
            return StreamingExecutor(
                transport=self.stream_transport,
                session_id=self.config.session_id,
                connection_seconds=self.config.connection_seconds,
                message_interval=self.config.message_interval,
                handshake_timeout=self.config.request_timeout,
                metrics=self.metrics,
            )
        return PublishExecutor(
            batch_size=self.config.batch_size,
            auth_provider=self.auth_provider,
            transport=self.transport,
            metrics=self.metrics,
        )

    async def _setup_publish(self) -> SetupState:
        logger.info(f"Starting Pub/Sub soak test against {self.config.topic_path}")

        credential = await self.auth_provider.acquire()
        if credential is None:
            logger.error("Failed to get access token. Please ensure you have valid credentials.")
            logger.error("Provide a token via TOKEN or GCLOUD_AUTH_TOKEN, or run inside GCP")
            return SetupState(connection_successful=False, error="No access token available")

        try:
            probe = await self.transport.probe(credential.token)
        except TransportError as e:
            logger.error(f"Failed to connect to Pub/Sub topic: {str(e)}")
            return SetupState(connection_successful=False, credential=credential, error=str(e))

        if not probe.ok:
            logger.error(f"Failed to connect to Pub/Sub topic: {probe.status} {probe.body}")
            return SetupState(
                connection_successful=False,
                credential=credential,
                error=f"Topic probe returned status {probe.status}",
            )

        logger.info("Successfully connected to Pub/Sub topic")
        return SetupState(connection_successful=True, credential=credential)

    async def _setup_stream(self) -> SetupState:
        logger.info(f"Starting WebSocket soak test against {self.config.ws_url}")
        try:
            channel = await self.stream_transport.connect()
            await channel.close()
        except TransportError as e:
            logger.error(f"Failed to open WebSocket connection: {str(e)}")
            return SetupState(connection_successful=False, error=str(e))

        logger.info("Successfully opened WebSocket connection")
        return SetupState(connection_successful=True)

    def _record_abandoned(self) -> None:
        self.metrics.record(
            OperationOutcome.failed(
                FailureReason.TIMEOUT_AT_SHUTDOWN,
                f"Operation unfinished after {self.config.grace_period}s grace period",
            )
        )

    async def _close_resources(self) -> None:
        for resource in self._owned_resources:
            try:
                await resource.close()
            except Exception as e:
                logger.error(f"Error closing {type(resource).__name__}: {str(e)}")
        self._owned_resources.clear()


async def run_soak_test(config: SoakTestConfig, **kwargs) -> SoakResult:
    """Run one soak test with the given configuration."""
    return await SoakTest(config, **kwargs).execute()


async def _run_with_signal_handlers(config: SoakTestConfig) -> SoakResult:
    soak_test = SoakTest(config)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, soak_test.stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's event loop
            pass
    return await soak_test.execute()


def main() -> int:
    """Entry point: configuration comes from environment variables."""
    setup_logging_from_env()
    try:
        try:
            config = SoakTestConfig.from_env()
        except ConfigurationError as e:
            logger.error(str(e))
            return EXIT_CONFIG_ERROR

        logger.info(f"Using configuration: {config.describe()}")
        result = asyncio.run(_run_with_signal_handlers(config))
        print(result.render())

        if not result.connection_successful:
            return EXIT_CONNECTION_FAILED
        if not result.passed:
            return EXIT_THRESHOLDS_FAILED
        return EXIT_OK
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
