"""PostgreSQL storage for the event relay.

Grouped writes (publish, dead-letter) run in a single session and commit
once, so the event log, the outbox and the DLQ never disagree.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventing.domain.exceptions import DuplicateEventError
from eventing.domain.value_objects import (
    RELAY_CONSUMER_NAME,
    DLQMessage,
    EventLogDraft,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
)
from eventing.infrastructure.event_log_reader import EventLogReader
from eventing.infrastructure.models import DLQMessageModel, EventLogModel, OutboxModel

# Serializes sequence assignment while still allowing concurrent readers
_LOCK_EVENT_LOG = text("LOCK TABLE event_log IN SHARE ROW EXCLUSIVE MODE")


async def append_event_log_entry(
    session: AsyncSession, draft: EventLogDraft
) -> EventLogModel:
    """Add an event log row with the next sequence to the session.

    Must be called inside the transaction that will commit the row. The
    table lock is held until that transaction ends, which keeps sequences
    gapless and strictly increasing across concurrent publishers.
    """
    await session.execute(_LOCK_EVENT_LOG)
    next_sequence = (
        await session.execute(select(func.coalesce(func.max(EventLogModel.sequence), 0) + 1))
    ).scalar_one()

    model = EventLogModel(
        sequence=next_sequence,
        event_id=draft.event_id,
        tenant_id=draft.tenant_id,
        schema_id=draft.schema_id,
        schema_version=draft.schema_version,
        headers=draft.headers.to_dict(),
        payload_redacted=draft.payload_redacted,
        payload_hash=draft.payload_hash,
        published_at=draft.published_at,
    )
    session.add(model)
    await session.flush()
    return model


class RelayRepository(EventLogReader):
    """PostgreSQL implementation of IRelayRepository."""

    async def fetch_pending(self, limit: int, max_attempts: int) -> list[OutboxEvent]:
        """Fetch pending rows below the attempts ceiling, oldest first.

        Rows are not locked; concurrent relays are made safe by the event id
        lookup and the unique constraint on event_log.event_id.
        """
        stmt = (
            select(OutboxModel)
            .where(OutboxModel.status == OutboxStatus.PENDING.value)
            .where(OutboxModel.attempts < max_attempts)
            .order_by(OutboxModel.created_at)
            .limit(limit)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [model.to_value_object() for model in result.scalars().all()]

    async def publish(self, outbox_id: UUID, draft: EventLogDraft) -> EventLogEntry:
        async with self._session_factory() as session:
            try:
                model = await append_event_log_entry(session, draft)
                await session.execute(
                    update(OutboxModel)
                    .where(OutboxModel.id == outbox_id)
                    .values(
                        status=OutboxStatus.PUBLISHED.value,
                        published_at=draft.published_at,
                    )
                )
                entry = model.to_value_object()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateEventError(draft.event_id) from e

            return entry

    async def mark_published(self, outbox_id: UUID, published_at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(OutboxModel)
                .where(OutboxModel.id == outbox_id)
                .values(status=OutboxStatus.PUBLISHED.value, published_at=published_at)
            )
            await session.commit()

    async def record_failure(self, outbox_id: UUID, attempts: int, error: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(OutboxModel)
                .where(OutboxModel.id == outbox_id)
                .values(attempts=attempts, last_error=error)
            )
            await session.commit()

    async def dead_letter(
        self,
        outbox_id: UUID,
        attempts: int,
        error: str,
        draft: EventLogDraft,
        payload_snapshot: dict,
    ) -> DLQMessage:
        async with self._session_factory() as session:
            entry = await append_event_log_entry(session, draft)

            dlq = DLQMessageModel(
                id=uuid4(),
                consumer_name=RELAY_CONSUMER_NAME,
                event_id=entry.event_id,
                sequence=entry.sequence,
                failure_reason=error,
                payload_snapshot=payload_snapshot,
                created_at=datetime.now(UTC),
            )
            session.add(dlq)

            await session.execute(
                update(OutboxModel)
                .where(OutboxModel.id == outbox_id)
                .values(
                    status=OutboxStatus.FAILED.value,
                    attempts=attempts,
                    last_error=error,
                )
            )
            message = dlq.to_value_object()
            await session.commit()
            return message

    async def count_outbox(self, status: OutboxStatus) -> int:
        stmt = (
            select(func.count())
            .select_from(OutboxModel)
            .where(OutboxModel.status == status.value)
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def count_dlq(self, consumer_name: str) -> int:
        stmt = (
            select(func.count())
            .select_from(DLQMessageModel)
            .where(DLQMessageModel.consumer_name == consumer_name)
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def recent_publish_times(self, limit: int) -> list[tuple[datetime, datetime]]:
        stmt = (
            select(OutboxModel.occurred_at, OutboxModel.published_at)
            .where(OutboxModel.status == OutboxStatus.PUBLISHED.value)
            .where(OutboxModel.published_at.is_not(None))
            .order_by(OutboxModel.published_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [(row.occurred_at, row.published_at) for row in result.all()]
