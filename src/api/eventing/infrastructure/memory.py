"""In-memory event store.

Backs the pipeline with plain dicts and lists for local runs without
PostgreSQL and for tests. State is shared by three adapters, one per
repository port:

    store = InMemoryEventStore()
    relay = EventRelay(store.relay_repository)
    runner = ConsumerRunner(consumer, config, store.consumer_repository)

Nothing is persisted across restarts.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

from eventing.domain.exceptions import DuplicateEventError
from eventing.domain.value_objects import (
    RELAY_CONSUMER_NAME,
    ConsumerEventRecord,
    ConsumerEventStatus,
    DLQMessage,
    EventLogDraft,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
)


class InMemoryEventStore:
    """Holds the outbox, the event log, consumer records and the DLQ."""

    def __init__(self) -> None:
        self._outbox: dict[UUID, OutboxEvent] = {}
        self._log: list[EventLogEntry] = []
        self._log_by_event_id: dict[str, EventLogEntry] = {}
        self._records: dict[tuple[str, str], ConsumerEventRecord] = {}
        self._dlq: list[DLQMessage] = []

        self.outbox_repository = InMemoryOutboxRepository(self)
        self.relay_repository = InMemoryRelayRepository(self)
        self.consumer_repository = InMemoryConsumerRepository(self)

    def add_outbox_event(self, event: OutboxEvent) -> OutboxEvent:
        """Insert an outbox row directly (used by tests and local tooling)."""
        self._outbox[event.id] = event
        return event

    def get_outbox_event(self, outbox_id: UUID) -> OutboxEvent | None:
        return self._outbox.get(outbox_id)

    @property
    def outbox_events(self) -> list[OutboxEvent]:
        return list(self._outbox.values())

    @property
    def event_log(self) -> list[EventLogEntry]:
        return list(self._log)

    @property
    def dlq_messages(self) -> list[DLQMessage]:
        return list(self._dlq)

    def _append(self, draft: EventLogDraft) -> EventLogEntry:
        if draft.event_id in self._log_by_event_id:
            raise DuplicateEventError(draft.event_id)

        entry = EventLogEntry.from_draft(draft, sequence=len(self._log) + 1)
        self._log.append(entry)
        self._log_by_event_id[entry.event_id] = entry
        return entry

    def _update_outbox(self, outbox_id: UUID, **changes) -> None:
        event = self._outbox.get(outbox_id)
        if event is not None:
            self._outbox[outbox_id] = replace(event, **changes)

    def _add_dlq(
        self,
        consumer_name: str,
        event_id: str,
        sequence: int,
        reason: str,
        payload_snapshot: dict,
    ) -> DLQMessage:
        message = DLQMessage(
            id=uuid4(),
            consumer_name=consumer_name,
            event_id=event_id,
            sequence=sequence,
            failure_reason=reason,
            payload_snapshot=payload_snapshot,
            created_at=datetime.now(UTC),
        )
        self._dlq.append(message)
        return message


class _InMemoryEventLogReader:
    """IEventLogReader over an InMemoryEventStore."""

    def __init__(self, store: InMemoryEventStore) -> None:
        self._store = store

    async def get_event(self, event_id: str) -> EventLogEntry | None:
        return self._store._log_by_event_id.get(event_id)

    async def fetch_after(
        self, after_sequence: int, schema_id_prefix: str, limit: int
    ) -> list[EventLogEntry]:
        matching = [
            entry
            for entry in self._store._log
            if entry.sequence > after_sequence
            and entry.schema_id.startswith(schema_id_prefix)
        ]
        return matching[:limit]

    async def fetch_range(
        self,
        from_sequence: int,
        to_sequence: int | None,
        schema_id_prefix: str,
        limit: int,
    ) -> list[EventLogEntry]:
        matching = [
            entry
            for entry in self._store._log
            if entry.sequence >= from_sequence
            and (to_sequence is None or entry.sequence <= to_sequence)
            and entry.schema_id.startswith(schema_id_prefix)
        ]
        return matching[:limit]

    async def query_events(
        self,
        after_sequence: int | None = None,
        tenant_id: str | None = None,
        schema_id: str | None = None,
        limit: int = 100,
    ) -> list[EventLogEntry]:
        matching = [
            entry
            for entry in self._store._log
            if (after_sequence is None or entry.sequence > after_sequence)
            and (tenant_id is None or entry.tenant_id == tenant_id)
            and (schema_id is None or entry.schema_id == schema_id)
        ]
        return matching[:limit]

    async def list_dlq_messages(
        self, consumer_name: str | None = None, limit: int = 100
    ) -> list[DLQMessage]:
        matching = [
            message
            for message in reversed(self._store._dlq)
            if consumer_name is None or message.consumer_name == consumer_name
        ]
        return matching[:limit]


class InMemoryOutboxRepository:
    """IOutboxRepository over an InMemoryEventStore.

    There is no transaction to join, so rows are visible immediately.
    """

    def __init__(self, store: InMemoryEventStore) -> None:
        self._store = store

    async def append(self, event: OutboxEvent) -> None:
        self._store.add_outbox_event(event)


class InMemoryRelayRepository(_InMemoryEventLogReader):
    """IRelayRepository over an InMemoryEventStore."""

    async def fetch_pending(self, limit: int, max_attempts: int) -> list[OutboxEvent]:
        pending = [
            event
            for event in self._store._outbox.values()
            if event.status == OutboxStatus.PENDING and event.attempts < max_attempts
        ]
        pending.sort(key=lambda event: event.created_at)
        return pending[:limit]

    async def publish(self, outbox_id: UUID, draft: EventLogDraft) -> EventLogEntry:
        entry = self._store._append(draft)
        self._store._update_outbox(
            outbox_id, status=OutboxStatus.PUBLISHED, published_at=draft.published_at
        )
        return entry

    async def mark_published(self, outbox_id: UUID, published_at: datetime) -> None:
        self._store._update_outbox(
            outbox_id, status=OutboxStatus.PUBLISHED, published_at=published_at
        )

    async def record_failure(self, outbox_id: UUID, attempts: int, error: str) -> None:
        self._store._update_outbox(outbox_id, attempts=attempts, last_error=error)

    async def dead_letter(
        self,
        outbox_id: UUID,
        attempts: int,
        error: str,
        draft: EventLogDraft,
        payload_snapshot: dict,
    ) -> DLQMessage:
        entry = self._store._append(draft)
        message = self._store._add_dlq(
            RELAY_CONSUMER_NAME, entry.event_id, entry.sequence, error, payload_snapshot
        )
        self._store._update_outbox(
            outbox_id, status=OutboxStatus.FAILED, attempts=attempts, last_error=error
        )
        return message

    async def count_outbox(self, status: OutboxStatus) -> int:
        return sum(1 for event in self._store._outbox.values() if event.status == status)

    async def count_dlq(self, consumer_name: str) -> int:
        return sum(1 for message in self._store._dlq if message.consumer_name == consumer_name)

    async def recent_publish_times(self, limit: int) -> list[tuple[datetime, datetime]]:
        published = [
            event
            for event in self._store._outbox.values()
            if event.status == OutboxStatus.PUBLISHED and event.published_at is not None
        ]
        published.sort(key=lambda event: event.published_at, reverse=True)
        return [(event.occurred_at, event.published_at) for event in published[:limit]]


class InMemoryConsumerRepository(_InMemoryEventLogReader):
    """IConsumerRepository over an InMemoryEventStore."""

    async def get_record(
        self, consumer_name: str, event_id: str
    ) -> ConsumerEventRecord | None:
        return self._store._records.get((consumer_name, event_id))

    async def last_completed_sequence(self, consumer_name: str) -> int:
        return max(
            (
                record.sequence
                for (name, _), record in self._store._records.items()
                if name == consumer_name and record.is_completed
            ),
            default=0,
        )

    async def first_unfinished_sequence(self, consumer_name: str) -> int | None:
        return min(
            (
                record.sequence
                for (name, _), record in self._store._records.items()
                if name == consumer_name
                and record.status
                in (ConsumerEventStatus.PENDING, ConsumerEventStatus.PROCESSING)
            ),
            default=None,
        )

    async def mark_processing(
        self, consumer_name: str, event_id: str, sequence: int
    ) -> ConsumerEventRecord:
        key = (consumer_name, event_id)
        existing = self._store._records.get(key)
        if existing is None:
            record = ConsumerEventRecord(
                consumer_name=consumer_name,
                event_id=event_id,
                sequence=sequence,
                status=ConsumerEventStatus.PROCESSING,
                attempts=1,
            )
        else:
            record = replace(
                existing,
                status=ConsumerEventStatus.PROCESSING,
                attempts=existing.attempts + 1,
            )
        self._store._records[key] = record
        return record

    async def mark_completed(
        self, consumer_name: str, event_id: str, processed_at: datetime
    ) -> None:
        self._update_record(
            consumer_name,
            event_id,
            status=ConsumerEventStatus.COMPLETED,
            processed_at=processed_at,
            last_error=None,
        )

    async def mark_retryable(self, consumer_name: str, event_id: str, error: str) -> None:
        self._update_record(
            consumer_name, event_id, status=ConsumerEventStatus.PENDING, last_error=error
        )

    async def dead_letter(
        self, consumer_name: str, entry: EventLogEntry, error: str
    ) -> DLQMessage:
        message = self._store._add_dlq(
            consumer_name, entry.event_id, entry.sequence, error, entry.payload_redacted
        )
        self._update_record(
            consumer_name, entry.event_id, status=ConsumerEventStatus.FAILED, last_error=error
        )
        return message

    async def delete_records(self, consumer_name: str, event_ids: list[str]) -> int:
        deleted = 0
        for event_id in event_ids:
            if self._store._records.pop((consumer_name, event_id), None) is not None:
                deleted += 1
        return deleted

    def _update_record(self, consumer_name: str, event_id: str, **changes) -> None:
        key = (consumer_name, event_id)
        record = self._store._records.get(key)
        if record is not None:
            self._store._records[key] = replace(record, **changes)
