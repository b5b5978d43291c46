"""Repository protocols (ports) for the event pipeline.

The relay and the consumer runner depend only on these protocols. Grouped
writes (publish, dead-letter) are single methods so that each
implementation can make them atomic within one transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from eventing.domain.value_objects import (
    ConsumerEventRecord,
    DLQMessage,
    EventLogDraft,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
)


@runtime_checkable
class IOutboxRepository(Protocol):
    """Writes outbox rows inside the caller's transaction.

    Implementations share the session of the calling service and never
    commit; the caller's transaction boundary decides durability of the
    domain change and its outbox row together.
    """

    async def append(self, event: OutboxEvent) -> None:
        """Add an outbox row to the current transaction."""
        ...


@runtime_checkable
class IRelayRepository(Protocol):
    """Storage operations used by the event relay."""

    async def fetch_pending(self, limit: int, max_attempts: int) -> list[OutboxEvent]:
        """Fetch pending rows below the attempts ceiling, oldest first.

        Args:
            limit: Maximum number of rows to return
            max_attempts: Rows with attempts >= this value are excluded

        Returns:
            Pending outbox rows ordered by created_at ascending
        """
        ...

    async def get_event(self, event_id: str) -> EventLogEntry | None:
        """Look up an event log entry by its event id."""
        ...

    async def publish(self, outbox_id: UUID, draft: EventLogDraft) -> EventLogEntry:
        """Append a log entry and mark the outbox row published, atomically.

        Raises:
            DuplicateEventError: If the draft's event id is already in the log
        """
        ...

    async def mark_published(self, outbox_id: UUID, published_at: datetime) -> None:
        """Mark an outbox row published without appending to the log."""
        ...

    async def record_failure(self, outbox_id: UUID, attempts: int, error: str) -> None:
        """Persist a failed attempt; the row stays pending."""
        ...

    async def dead_letter(
        self,
        outbox_id: UUID,
        attempts: int,
        error: str,
        draft: EventLogDraft,
        payload_snapshot: dict,
    ) -> DLQMessage:
        """Escalate a row to the DLQ, atomically.

        Appends the fallback log entry described by ``draft``, creates a DLQ
        message referencing it and marks the outbox row failed.
        """
        ...

    async def count_outbox(self, status: OutboxStatus) -> int:
        """Count outbox rows in the given status."""
        ...

    async def count_dlq(self, consumer_name: str) -> int:
        """Count DLQ messages recorded for a consumer name."""
        ...

    async def recent_publish_times(self, limit: int) -> list[tuple[datetime, datetime]]:
        """Return (occurred_at, published_at) pairs for recently published rows."""
        ...


@runtime_checkable
class IEventLogReader(Protocol):
    """Read access to the event log and the DLQ."""

    async def get_event(self, event_id: str) -> EventLogEntry | None:
        """Look up an event log entry by its event id."""
        ...

    async def fetch_after(
        self, after_sequence: int, schema_id_prefix: str, limit: int
    ) -> list[EventLogEntry]:
        """Fetch entries with sequence > after_sequence matching a prefix.

        Returns:
            Entries ordered by sequence ascending
        """
        ...

    async def fetch_range(
        self,
        from_sequence: int,
        to_sequence: int | None,
        schema_id_prefix: str,
        limit: int,
    ) -> list[EventLogEntry]:
        """Fetch entries with from_sequence <= sequence <= to_sequence.

        An open upper bound is expressed as ``to_sequence=None``.
        """
        ...

    async def query_events(
        self,
        after_sequence: int | None = None,
        tenant_id: str | None = None,
        schema_id: str | None = None,
        limit: int = 100,
    ) -> list[EventLogEntry]:
        """Query the log with optional exact filters, ascending by sequence."""
        ...

    async def list_dlq_messages(
        self, consumer_name: str | None = None, limit: int = 100
    ) -> list[DLQMessage]:
        """List DLQ messages, newest first."""
        ...


@runtime_checkable
class IConsumerRepository(IEventLogReader, Protocol):
    """Storage operations used by the consumer runner."""

    async def get_record(
        self, consumer_name: str, event_id: str
    ) -> ConsumerEventRecord | None:
        """Get the processing record of one event for one consumer."""
        ...

    async def last_completed_sequence(self, consumer_name: str) -> int:
        """Highest sequence with status completed for a consumer (0 if none)."""
        ...

    async def first_unfinished_sequence(self, consumer_name: str) -> int | None:
        """Lowest sequence with status pending or processing (None if none)."""
        ...

    async def mark_processing(
        self, consumer_name: str, event_id: str, sequence: int
    ) -> ConsumerEventRecord:
        """Upsert the record as processing and increment its attempts.

        Returns:
            The record after the update
        """
        ...

    async def mark_completed(
        self, consumer_name: str, event_id: str, processed_at: datetime
    ) -> None:
        """Mark the record completed."""
        ...

    async def mark_retryable(self, consumer_name: str, event_id: str, error: str) -> None:
        """Return the record to pending with the error recorded."""
        ...

    async def dead_letter(
        self, consumer_name: str, entry: EventLogEntry, error: str
    ) -> DLQMessage:
        """Create a DLQ message and mark the record failed, atomically."""
        ...

    async def delete_records(self, consumer_name: str, event_ids: list[str]) -> int:
        """Delete a consumer's records for the given events.

        Returns:
            Number of records deleted
        """
        ...
