"""PostgreSQL storage for consumer checkpoints and consumer DLQ writes."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from eventing.domain.value_objects import (
    ConsumerEventRecord,
    ConsumerEventStatus,
    DLQMessage,
    EventLogEntry,
)
from eventing.infrastructure.event_log_reader import EventLogReader
from eventing.infrastructure.models import ConsumerEventModel, DLQMessageModel


class ConsumerRepository(EventLogReader):
    """PostgreSQL implementation of IConsumerRepository."""

    def _record_filter(self, consumer_name: str, event_id: str):
        return (
            ConsumerEventModel.consumer_name == consumer_name,
            ConsumerEventModel.event_id == event_id,
        )

    async def get_record(
        self, consumer_name: str, event_id: str
    ) -> ConsumerEventRecord | None:
        stmt = select(ConsumerEventModel).where(*self._record_filter(consumer_name, event_id))
        async with self._session_factory() as session:
            model = (await session.execute(stmt)).scalar_one_or_none()
            return model.to_value_object() if model else None

    async def last_completed_sequence(self, consumer_name: str) -> int:
        stmt = (
            select(func.coalesce(func.max(ConsumerEventModel.sequence), 0))
            .where(ConsumerEventModel.consumer_name == consumer_name)
            .where(ConsumerEventModel.status == ConsumerEventStatus.COMPLETED.value)
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def first_unfinished_sequence(self, consumer_name: str) -> int | None:
        stmt = (
            select(func.min(ConsumerEventModel.sequence))
            .where(ConsumerEventModel.consumer_name == consumer_name)
            .where(
                ConsumerEventModel.status.in_(
                    [
                        ConsumerEventStatus.PENDING.value,
                        ConsumerEventStatus.PROCESSING.value,
                    ]
                )
            )
        )
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def mark_processing(
        self, consumer_name: str, event_id: str, sequence: int
    ) -> ConsumerEventRecord:
        """Upsert the record as processing, incrementing attempts."""
        now = datetime.now(UTC)
        stmt = (
            pg_insert(ConsumerEventModel)
            .values(
                id=uuid4(),
                consumer_name=consumer_name,
                event_id=event_id,
                sequence=sequence,
                status=ConsumerEventStatus.PROCESSING.value,
                attempts=1,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                constraint="uq_consumer_events_consumer_event",
                set_={
                    "status": ConsumerEventStatus.PROCESSING.value,
                    "attempts": ConsumerEventModel.attempts + 1,
                    "updated_at": now,
                },
            )
            .returning(ConsumerEventModel)
        )

        async with self._session_factory() as session:
            result = await session.scalars(
                stmt, execution_options={"populate_existing": True}
            )
            model = result.one()
            record = model.to_value_object()
            await session.commit()
            return record

    async def mark_completed(
        self, consumer_name: str, event_id: str, processed_at: datetime
    ) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(ConsumerEventModel)
                .where(*self._record_filter(consumer_name, event_id))
                .values(
                    status=ConsumerEventStatus.COMPLETED.value,
                    processed_at=processed_at,
                    last_error=None,
                )
            )
            await session.commit()

    async def mark_retryable(self, consumer_name: str, event_id: str, error: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(ConsumerEventModel)
                .where(*self._record_filter(consumer_name, event_id))
                .values(status=ConsumerEventStatus.PENDING.value, last_error=error)
            )
            await session.commit()

    async def dead_letter(
        self, consumer_name: str, entry: EventLogEntry, error: str
    ) -> DLQMessage:
        async with self._session_factory() as session:
            dlq = DLQMessageModel(
                id=uuid4(),
                consumer_name=consumer_name,
                event_id=entry.event_id,
                sequence=entry.sequence,
                failure_reason=error,
                payload_snapshot=entry.payload_redacted,
                created_at=datetime.now(UTC),
            )
            session.add(dlq)

            await session.execute(
                update(ConsumerEventModel)
                .where(*self._record_filter(consumer_name, entry.event_id))
                .values(status=ConsumerEventStatus.FAILED.value, last_error=error)
            )
            message = dlq.to_value_object()
            await session.commit()
            return message

    async def delete_records(self, consumer_name: str, event_ids: list[str]) -> int:
        if not event_ids:
            return 0

        async with self._session_factory() as session:
            result = await session.execute(
                delete(ConsumerEventModel)
                .where(ConsumerEventModel.consumer_name == consumer_name)
                .where(ConsumerEventModel.event_id.in_(event_ids))
            )
            await session.commit()
            return result.rowcount
