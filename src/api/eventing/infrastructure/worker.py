"""Background workers for the relay and the consumers.

Workers run as asyncio tasks within the FastAPI application. Each loop
awaits its poll before sleeping, so at most one poll per component is in
flight. Lifecycle state lives on the worker instances.
"""

from __future__ import annotations

import asyncio

from eventing.application.consumer import ConsumerRunner
from eventing.application.metrics import RelayMetricsReader
from eventing.application.relay import EventRelay
from eventing.infrastructure.observability import DefaultWorkerProbe, WorkerProbe

RELAY_WORKER_NAME = "outbox-relay"


async def _wait_or_stop(stop_event: asyncio.Event, timeout: float) -> None:
    """Sleep for ``timeout`` seconds, returning early when stop is requested."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except TimeoutError:
        pass


class RelayWorker:
    """Runs the event relay on a fixed interval and logs relay metrics.

    The first relay batch runs immediately on start; metrics are logged
    every ``metrics_interval_seconds``.
    """

    def __init__(
        self,
        relay: EventRelay,
        metrics_reader: RelayMetricsReader,
        probe: WorkerProbe | None = None,
        poll_interval_seconds: float = 2.0,
        metrics_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the worker.

        Args:
            relay: The relay to drive
            metrics_reader: Source of the periodic metrics log line
            probe: Observability probe for logging
            poll_interval_seconds: Delay between relay batches
            metrics_interval_seconds: Delay between metrics log lines
        """
        self._relay = relay
        self._metrics_reader = metrics_reader
        self._probe = probe or DefaultWorkerProbe()
        self._poll_interval = poll_interval_seconds
        self._metrics_interval = metrics_interval_seconds
        self._stop_event: asyncio.Event | None = None
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the relay and metrics loops."""
        if self.is_running:
            self._probe.worker_already_running(RELAY_WORKER_NAME)
            return

        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._poll_loop(self._stop_event)),
            asyncio.create_task(self._metrics_loop(self._stop_event)),
        ]
        self._probe.worker_started(RELAY_WORKER_NAME, self._poll_interval)

    async def stop(self) -> None:
        """Gracefully stop the worker.

        Signals both loops to stop and waits for an in-flight batch to
        finish.
        """
        if not self.is_running or self._stop_event is None:
            return

        self._stop_event.set()
        await asyncio.gather(*self._tasks)
        self._tasks = []
        self._stop_event = None
        self._probe.worker_stopped(RELAY_WORKER_NAME)

    async def _poll_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self._relay.relay()
            except Exception as e:
                self._probe.poll_loop_error(RELAY_WORKER_NAME, str(e))

            await _wait_or_stop(stop_event, self._poll_interval)

    async def _metrics_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            await _wait_or_stop(stop_event, self._metrics_interval)
            if stop_event.is_set():
                return

            try:
                metrics = await self._metrics_reader.get_relay_metrics()
            except Exception as e:
                self._probe.metrics_error(str(e))
                continue

            self._probe.relay_metrics(metrics)


class ConsumerWorker:
    """Registry of consumer runners, started and stopped together."""

    def __init__(self, probe: WorkerProbe | None = None) -> None:
        self._probe = probe or DefaultWorkerProbe()
        self._runners: dict[str, ConsumerRunner] = {}

    def register(self, runner: ConsumerRunner) -> None:
        """Register a runner under its consumer name.

        Raises:
            ValueError: If a runner with the same name is already registered
        """
        if runner.name in self._runners:
            raise ValueError(f"Consumer already registered: {runner.name}")

        self._runners[runner.name] = runner
        self._probe.consumer_registered(runner.name, runner.config.schema_id_prefix)

    def get(self, name: str) -> ConsumerRunner | None:
        return self._runners.get(name)

    @property
    def runners(self) -> list[ConsumerRunner]:
        return list(self._runners.values())

    async def start(self) -> None:
        """Start every registered runner.

        If one fails to start, the runners already started are stopped and
        the error propagates.
        """
        for runner in self._runners.values():
            try:
                await runner.start()
            except Exception as e:
                self._probe.consumer_start_failed(runner.name, str(e))
                await self.stop()
                raise

    async def stop(self) -> None:
        for runner in self._runners.values():
            await runner.stop()
