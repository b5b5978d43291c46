"""Value objects for the event pipeline.

Value objects are immutable descriptors of the records that move through
the outbox, the event log, consumer checkpoints and the dead letter queue.
They carry no persistence concerns; repositories convert ORM rows into
these objects at the port boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

# Consumer name recorded on DLQ messages produced by the relay itself
RELAY_CONSUMER_NAME = "outbox-relay"

# Schema id used for fallback log entries when the event type cannot be parsed
FALLBACK_SCHEMA_ID = "system.error"
FALLBACK_SCHEMA_VERSION = "v1"


class OutboxStatus(StrEnum):
    """Lifecycle of an outbox row."""

    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


class ConsumerEventStatus(StrEnum):
    """Lifecycle of a (consumer, event) pair."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class OutboxEvent:
    """A pending fact awaiting durable publication.

    Attributes:
        id: Storage identity of the row
        tenant_id: Tenant that owns the event
        event_type: Versioned type string, e.g. "user.created.v1"
        payload: Structured event data
        occurred_at: When the domain change happened
        created_at: When the row was written to the outbox
        aggregate_id: Optional id of the aggregate that changed
        dedupe_key: Optional caller-supplied idempotency key
        status: Current outbox status
        attempts: Number of failed relay attempts so far
        last_error: Most recent relay error (if any)
        published_at: When the row was published (None until then)
    """

    id: UUID
    tenant_id: str
    event_type: str
    payload: dict[str, Any]
    occurred_at: datetime
    created_at: datetime
    aggregate_id: str | None = None
    dedupe_key: str | None = None
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    published_at: datetime | None = None

    @property
    def is_published(self) -> bool:
        """Check if this row has been published to the event log."""
        return self.status == OutboxStatus.PUBLISHED

    @property
    def is_failed(self) -> bool:
        """Check if this row has been escalated to the DLQ."""
        return self.status == OutboxStatus.FAILED


@dataclass(frozen=True)
class SchemaRef:
    """Schema family and version parsed from an event type."""

    schema_id: str
    version: str


@dataclass(frozen=True)
class EventHeaders:
    """Structured headers lifted out of an event payload."""

    tenant_id: str
    trace_id: str | None = None
    correlation_id: str | None = None
    actor_user_id: str | None = None
    pii_tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert headers to a JSON-compatible dictionary."""
        return {
            "tenant_id": self.tenant_id,
            "trace_id": self.trace_id,
            "correlation_id": self.correlation_id,
            "actor_user_id": self.actor_user_id,
            "pii_tags": list(self.pii_tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], tenant_id: str) -> EventHeaders:
        """Rebuild headers from their stored form.

        Args:
            data: The stored header dictionary (may be empty)
            tenant_id: Tenant of the owning entry, used when absent from data
        """
        return cls(
            tenant_id=data.get("tenant_id") or tenant_id,
            trace_id=data.get("trace_id"),
            correlation_id=data.get("correlation_id"),
            actor_user_id=data.get("actor_user_id"),
            pii_tags=tuple(data.get("pii_tags") or ()),
        )


@dataclass(frozen=True)
class EventLogDraft:
    """An event log entry before the store assigns its sequence."""

    event_id: str
    tenant_id: str
    schema_id: str
    schema_version: str
    headers: EventHeaders
    payload_redacted: dict[str, Any]
    payload_hash: str
    published_at: datetime


@dataclass(frozen=True)
class EventLogEntry:
    """The durable, ordered, immutable record of a published event.

    Attributes:
        sequence: Position in the log, strictly increasing and gapless
        event_id: Globally unique id used for dedupe across replays
        tenant_id: Tenant that owns the event
        schema_id: Event family, e.g. "foundation.user.created"
        schema_version: Schema version, e.g. "v1"
        headers: Trace/correlation/actor headers and PII tags
        payload_redacted: Payload after redaction
        payload_hash: sha256 hex digest of the original payload
        published_at: When the entry was appended
    """

    sequence: int
    event_id: str
    tenant_id: str
    schema_id: str
    schema_version: str
    headers: EventHeaders
    payload_redacted: dict[str, Any]
    payload_hash: str
    published_at: datetime

    @classmethod
    def from_draft(cls, draft: EventLogDraft, sequence: int) -> EventLogEntry:
        """Create the stored entry for a draft once its sequence is known."""
        return cls(
            sequence=sequence,
            event_id=draft.event_id,
            tenant_id=draft.tenant_id,
            schema_id=draft.schema_id,
            schema_version=draft.schema_version,
            headers=draft.headers,
            payload_redacted=draft.payload_redacted,
            payload_hash=draft.payload_hash,
            published_at=draft.published_at,
        )


@dataclass(frozen=True)
class ConsumerEventRecord:
    """Per-consumer processing state of a single event."""

    consumer_name: str
    event_id: str
    sequence: int
    status: ConsumerEventStatus
    attempts: int = 0
    last_error: str | None = None
    processed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == ConsumerEventStatus.COMPLETED

    @property
    def is_dead_lettered(self) -> bool:
        return self.status == ConsumerEventStatus.FAILED


@dataclass(frozen=True)
class DLQMessage:
    """Terminal failure record for an event or outbox row."""

    id: UUID
    consumer_name: str
    event_id: str
    sequence: int
    failure_reason: str
    payload_snapshot: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class RedactionResult:
    """Output of a redactor: the masked payload and the tags it found."""

    redacted_payload: dict[str, Any]
    pii_tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelayResult:
    """Counts for one relay batch."""

    processed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped


@dataclass(frozen=True)
class RelayMetrics:
    """Aggregate view of the outbox and relay DLQ."""

    pending_count: int
    published_count: int
    failed_count: int
    dlq_count: int
    avg_lag_ms: int


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a consumer's process_event call.

    Attributes:
        success: Whether the event was handled
        error: Failure description when success is False
        should_retry: False marks the failure as permanent (straight to DLQ)
    """

    success: bool
    error: str | None = None
    should_retry: bool = True

    @classmethod
    def ok(cls) -> ProcessResult:
        return cls(success=True)

    @classmethod
    def retry(cls, error: str) -> ProcessResult:
        return cls(success=False, error=error, should_retry=True)

    @classmethod
    def rejected(cls, error: str) -> ProcessResult:
        return cls(success=False, error=error, should_retry=False)


@dataclass(frozen=True)
class ReplayResult:
    """Counts for a replay run."""

    replayed: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_event_ids: tuple[str, ...] = field(default_factory=tuple)
