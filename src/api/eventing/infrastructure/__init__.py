"""Infrastructure layer for the eventing bounded context.

PostgreSQL repositories (async SQLAlchemy), the in-memory store and the
background workers.
"""

from eventing.infrastructure.consumer_repository import ConsumerRepository
from eventing.infrastructure.event_log_reader import EventLogReader
from eventing.infrastructure.memory import InMemoryEventStore
from eventing.infrastructure.outbox_repository import OutboxRepository
from eventing.infrastructure.relay_repository import RelayRepository
from eventing.infrastructure.worker import ConsumerWorker, RelayWorker

__all__ = [
    "ConsumerRepository",
    "ConsumerWorker",
    "EventLogReader",
    "InMemoryEventStore",
    "OutboxRepository",
    "RelayRepository",
    "RelayWorker",
]
