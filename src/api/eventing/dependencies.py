"""Dependency injection for the eventing bounded context.

Composes the configured store (PostgreSQL or in-memory) with the relay,
the metrics reader and the workers. One runtime exists per process; it is
built on first use and cleared on shutdown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from eventing.application.activity import ACTIVITY_CONSUMER_NAME, EventActivityConsumer
from eventing.application.consumer import ConsumerConfig, ConsumerRunner
from eventing.application.metrics import RelayMetricsReader
from eventing.application.relay import EventRelay
from eventing.infrastructure.consumer_repository import ConsumerRepository
from eventing.infrastructure.memory import InMemoryEventStore
from eventing.infrastructure.outbox_repository import StandaloneOutboxRepository
from eventing.infrastructure.relay_repository import RelayRepository
from eventing.infrastructure.worker import ConsumerWorker, RelayWorker
from eventing.ports.consumers import EventConsumer
from eventing.ports.repositories import (
    IConsumerRepository,
    IEventLogReader,
    IOutboxRepository,
    IRelayRepository,
)
from infrastructure.database.dependencies import get_session_factory
from infrastructure.settings import (
    ConsumerSettings,
    RelaySettings,
    Settings,
    get_consumer_settings,
    get_relay_settings,
    get_settings,
)


@dataclass
class EventingRuntime:
    """Process-wide pipeline components.

    Attributes:
        outbox_repository: Standalone outbox writes (ingest endpoint)
        relay_repository: Storage used by the relay and metrics
        consumer_repository: Storage used by consumer runners
        relay: The configured event relay
        metrics_reader: Relay metrics source
        relay_worker: Background relay loop
        consumer_worker: Registry of consumer runners
        consumer_settings: Defaults applied to registered consumers
        store: The in-memory store when event_store="memory", else None
        activity: The event activity consumer when enabled, else None
    """

    outbox_repository: IOutboxRepository
    relay_repository: IRelayRepository
    consumer_repository: IConsumerRepository
    relay: EventRelay
    metrics_reader: RelayMetricsReader
    relay_worker: RelayWorker
    consumer_worker: ConsumerWorker
    consumer_settings: ConsumerSettings = field(default_factory=ConsumerSettings)
    store: InMemoryEventStore | None = None
    activity: EventActivityConsumer | None = None

    @property
    def event_log_reader(self) -> IEventLogReader:
        return self.consumer_repository

    def register_consumer(
        self,
        consumer: EventConsumer,
        name: str,
        schema_id_prefix: str,
    ) -> ConsumerRunner:
        """Wrap a consumer in a runner and register it with the worker.

        Batch size, poll interval and max attempts come from the consumer
        settings.
        """
        config = ConsumerConfig(
            name=name,
            schema_id_prefix=schema_id_prefix,
            batch_size=self.consumer_settings.batch_size,
            poll_interval_seconds=self.consumer_settings.poll_interval_seconds,
            max_attempts=self.consumer_settings.max_attempts,
        )
        runner = ConsumerRunner(consumer, config, self.consumer_repository)
        self.consumer_worker.register(runner)
        return runner

    async def start(self) -> None:
        """Start the relay worker, then the consumers.

        A consumer start failure stops the relay worker before the error
        propagates.
        """
        await self.relay_worker.start()
        try:
            await self.consumer_worker.start()
        except Exception:
            await self.relay_worker.stop()
            raise

    async def stop(self) -> None:
        await self.consumer_worker.stop()
        await self.relay_worker.stop()


def build_runtime(
    settings: Settings,
    relay_settings: RelaySettings,
    consumer_settings: ConsumerSettings,
) -> EventingRuntime:
    """Build the pipeline for the configured event store."""
    store: InMemoryEventStore | None = None

    if settings.event_store == "memory":
        store = InMemoryEventStore()
        outbox_repository: IOutboxRepository = store.outbox_repository
        relay_repository: IRelayRepository = store.relay_repository
        consumer_repository: IConsumerRepository = store.consumer_repository
    else:
        session_factory = get_session_factory()
        outbox_repository = StandaloneOutboxRepository(session_factory)
        relay_repository = RelayRepository(session_factory)
        consumer_repository = ConsumerRepository(session_factory)

    relay = EventRelay(
        relay_repository,
        batch_size=relay_settings.batch_size,
        max_attempts=relay_settings.max_attempts,
    )
    metrics_reader = RelayMetricsReader(
        relay_repository, sample_size=relay_settings.metrics_sample_size
    )

    runtime = EventingRuntime(
        outbox_repository=outbox_repository,
        relay_repository=relay_repository,
        consumer_repository=consumer_repository,
        relay=relay,
        metrics_reader=metrics_reader,
        relay_worker=RelayWorker(
            relay,
            metrics_reader,
            poll_interval_seconds=relay_settings.poll_interval_seconds,
            metrics_interval_seconds=relay_settings.metrics_interval_seconds,
        ),
        consumer_worker=ConsumerWorker(),
        consumer_settings=consumer_settings,
        store=store,
    )

    if consumer_settings.activity_enabled:
        activity = EventActivityConsumer()
        runtime.register_consumer(
            activity, ACTIVITY_CONSUMER_NAME, consumer_settings.activity_schema_prefix
        )
        runtime.activity = activity

    return runtime


@lru_cache
def get_eventing_runtime() -> EventingRuntime:
    """Get the process-wide runtime, building it on first call."""
    return build_runtime(get_settings(), get_relay_settings(), get_consumer_settings())


def get_relay_metrics_reader() -> RelayMetricsReader:
    return get_eventing_runtime().metrics_reader


def get_event_log_reader() -> IEventLogReader:
    return get_eventing_runtime().event_log_reader


def get_consumer_worker() -> ConsumerWorker:
    return get_eventing_runtime().consumer_worker


def get_outbox_repository() -> IOutboxRepository:
    return get_eventing_runtime().outbox_repository


def get_event_activity() -> EventActivityConsumer | None:
    return get_eventing_runtime().activity
