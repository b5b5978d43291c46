"""Request and response models for the internal events API."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from eventing.application.activity import SchemaActivity
from eventing.domain.value_objects import (
    DLQMessage,
    EventLogEntry,
    RelayMetrics,
    ReplayResult,
)


class RelayMetricsResponse(BaseModel):
    pending_count: int
    published_count: int
    failed_count: int
    dlq_count: int
    avg_lag_ms: int

    @classmethod
    def from_domain(cls, metrics: RelayMetrics) -> RelayMetricsResponse:
        return cls(
            pending_count=metrics.pending_count,
            published_count=metrics.published_count,
            failed_count=metrics.failed_count,
            dlq_count=metrics.dlq_count,
            avg_lag_ms=metrics.avg_lag_ms,
        )


class EventLogEntryResponse(BaseModel):
    sequence: int
    event_id: str
    tenant_id: str
    schema_id: str
    schema_version: str
    headers: dict[str, Any]
    payload_redacted: dict[str, Any]
    payload_hash: str
    published_at: datetime

    @classmethod
    def from_domain(cls, entry: EventLogEntry) -> EventLogEntryResponse:
        return cls(
            sequence=entry.sequence,
            event_id=entry.event_id,
            tenant_id=entry.tenant_id,
            schema_id=entry.schema_id,
            schema_version=entry.schema_version,
            headers=entry.headers.to_dict(),
            payload_redacted=entry.payload_redacted,
            payload_hash=entry.payload_hash,
            published_at=entry.published_at,
        )


class EventLogPageResponse(BaseModel):
    """A page of the event log.

    ``next_sequence`` is the sequence to pass as ``after_sequence`` for the
    next page; it is null when this page was not full.
    """

    events: list[EventLogEntryResponse]
    next_sequence: int | None = None


class DLQMessageResponse(BaseModel):
    id: UUID
    consumer_name: str
    event_id: str
    sequence: int
    failure_reason: str
    payload_snapshot: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_domain(cls, message: DLQMessage) -> DLQMessageResponse:
        return cls(
            id=message.id,
            consumer_name=message.consumer_name,
            event_id=message.event_id,
            sequence=message.sequence,
            failure_reason=message.failure_reason,
            payload_snapshot=message.payload_snapshot,
            created_at=message.created_at,
        )


class DLQListResponse(BaseModel):
    messages: list[DLQMessageResponse]
    count: int


class ReplayRequest(BaseModel):
    from_sequence: int = Field(..., ge=0, description="First sequence (inclusive)")
    to_sequence: int | None = Field(
        default=None, ge=0, description="Last sequence (inclusive); open when omitted"
    )

    @model_validator(mode="after")
    def validate_range(self) -> ReplayRequest:
        if self.to_sequence is not None and self.to_sequence < self.from_sequence:
            raise ValueError("to_sequence must be >= from_sequence")
        return self


class ReplayResponse(BaseModel):
    consumer_name: str
    replayed: int
    succeeded: int
    failed: int
    failed_event_ids: list[str]

    @classmethod
    def from_domain(cls, consumer_name: str, result: ReplayResult) -> ReplayResponse:
        return cls(
            consumer_name=consumer_name,
            replayed=result.replayed,
            succeeded=result.succeeded,
            failed=result.failed,
            failed_event_ids=list(result.failed_event_ids),
        )


class IngestEventRequest(BaseModel):
    schema_id: str = Field(..., min_length=1, examples=["foundation.user.created"])
    version: str = Field(..., min_length=1, examples=["v1"])
    tenant_id: str = Field(..., min_length=1)
    payload: dict[str, Any]
    aggregate_id: str | None = None
    trace_id: str | None = None
    correlation_id: str | None = None
    actor_user_id: str | None = None
    dedupe_key: str | None = None

    @property
    def event_type(self) -> str:
        return f"{self.schema_id}.{self.version}"


class IngestEventResponse(BaseModel):
    outbox_id: UUID
    status: str = "accepted"


class SchemaActivityResponse(BaseModel):
    tenant_id: str
    schema_id: str
    event_count: int
    last_sequence: int
    last_occurred_at: datetime
    last_actor_user_id: str | None = None

    @classmethod
    def from_domain(cls, activity: SchemaActivity) -> SchemaActivityResponse:
        return cls(
            tenant_id=activity.tenant_id,
            schema_id=activity.schema_id,
            event_count=activity.event_count,
            last_sequence=activity.last_sequence,
            last_occurred_at=activity.last_occurred_at,
            last_actor_user_id=activity.last_actor_user_id,
        )


class ActivityListResponse(BaseModel):
    activity: list[SchemaActivityResponse]
    count: int
