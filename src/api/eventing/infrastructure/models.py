"""SQLAlchemy ORM models for the event pipeline.

Four tables back the pipeline:
- outbox_events: pending facts written in domain transactions
- event_log: the ordered, append-only log the relay publishes to
- consumer_events: per-consumer processing state (checkpoints)
- dlq_messages: terminal failures from the relay and from consumers
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from eventing.domain.value_objects import (
    ConsumerEventRecord,
    ConsumerEventStatus,
    DLQMessage,
    EventHeaders,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
)
from infrastructure.database.models import Base, TimestampMixin, _utc_now


class OutboxModel(Base):
    """ORM model for the outbox_events table.

    The partial index on pending rows keeps relay polling cheap once most
    of the table has been published.
    """

    __tablename__ = "outbox_events"
    __table_args__ = (
        Index(
            "idx_outbox_events_pending",
            "created_at",
            postgresql_where=text("status = 'pending'"),
        ),
        Index("idx_outbox_events_status_published_at", "status", "published_at"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(255), nullable=False)
    aggregate_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    dedupe_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        server_default=OutboxStatus.PENDING.value,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        insert_default=_utc_now,
    )

    @classmethod
    def from_value_object(cls, event: OutboxEvent) -> OutboxModel:
        """Create an ORM row from an OutboxEvent."""
        return cls(
            id=event.id,
            tenant_id=event.tenant_id,
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            payload=event.payload,
            dedupe_key=event.dedupe_key,
            status=event.status.value,
            attempts=event.attempts,
            last_error=event.last_error,
            occurred_at=event.occurred_at,
            published_at=event.published_at,
            created_at=event.created_at,
        )

    def to_value_object(self) -> OutboxEvent:
        """Convert this ORM model to an OutboxEvent value object."""
        return OutboxEvent(
            id=self.id,
            tenant_id=self.tenant_id,
            event_type=self.event_type,
            payload=self.payload,
            occurred_at=self.occurred_at,
            created_at=self.created_at,
            aggregate_id=self.aggregate_id,
            dedupe_key=self.dedupe_key,
            status=OutboxStatus(self.status),
            attempts=self.attempts,
            last_error=self.last_error,
            published_at=self.published_at,
        )

    def __repr__(self) -> str:
        return (
            f"<OutboxModel("
            f"id={self.id}, "
            f"event_type={self.event_type}, "
            f"status={self.status}, "
            f"attempts={self.attempts}"
            f")>"
        )


class EventLogModel(Base):
    """ORM model for the event_log table.

    ``sequence`` is assigned by the relay repository inside the publish
    transaction, not by a database sequence, so that it stays gapless when
    transactions roll back.
    """

    __tablename__ = "event_log"
    __table_args__ = (
        Index("idx_event_log_schema_sequence", "schema_id", "sequence"),
        Index("idx_event_log_tenant_sequence", "tenant_id", "sequence"),
    )

    sequence: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    event_id: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_id: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_version: Mapped[str] = mapped_column(String(32), nullable=False)
    headers: Mapped[dict] = mapped_column(JSONB, nullable=False)
    payload_redacted: Mapped[dict] = mapped_column(JSONB, nullable=False)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def to_value_object(self) -> EventLogEntry:
        return EventLogEntry(
            sequence=self.sequence,
            event_id=self.event_id,
            tenant_id=self.tenant_id,
            schema_id=self.schema_id,
            schema_version=self.schema_version,
            headers=EventHeaders.from_dict(self.headers or {}, self.tenant_id),
            payload_redacted=self.payload_redacted,
            payload_hash=self.payload_hash,
            published_at=self.published_at,
        )


class ConsumerEventModel(Base, TimestampMixin):
    """ORM model for the consumer_events table (one row per consumer x event)."""

    __tablename__ = "consumer_events"
    __table_args__ = (
        UniqueConstraint(
            "consumer_name", "event_id", name="uq_consumer_events_consumer_event"
        ),
        Index("idx_consumer_events_consumer_status_sequence", "consumer_name", "status", "sequence"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    consumer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_id: Mapped[str] = mapped_column(String(512), nullable=False)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        server_default=ConsumerEventStatus.PENDING.value,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_value_object(self) -> ConsumerEventRecord:
        return ConsumerEventRecord(
            consumer_name=self.consumer_name,
            event_id=self.event_id,
            sequence=self.sequence,
            status=ConsumerEventStatus(self.status),
            attempts=self.attempts,
            last_error=self.last_error,
            processed_at=self.processed_at,
        )


class DLQMessageModel(Base):
    """ORM model for the dlq_messages table."""

    __tablename__ = "dlq_messages"
    __table_args__ = (
        Index("idx_dlq_messages_consumer_created", "consumer_name", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    consumer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_id: Mapped[str] = mapped_column(String(512), nullable=False)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    failure_reason: Mapped[str] = mapped_column(Text, nullable=False)
    payload_snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        insert_default=_utc_now,
    )

    def to_value_object(self) -> DLQMessage:
        return DLQMessage(
            id=self.id,
            consumer_name=self.consumer_name,
            event_id=self.event_id,
            sequence=self.sequence,
            failure_reason=self.failure_reason,
            payload_snapshot=self.payload_snapshot,
            created_at=self.created_at,
        )
