"""Domain layer for the eventing bounded context.

Holds the immutable records of the pipeline and the pure functions that
derive event identity, parse schemas and redact payloads.
"""

from eventing.domain.exceptions import (
    DuplicateEventError,
    InvalidEventTypeError,
    InvalidPayloadError,
)
from eventing.domain.value_objects import (
    FALLBACK_SCHEMA_ID,
    FALLBACK_SCHEMA_VERSION,
    RELAY_CONSUMER_NAME,
    ConsumerEventRecord,
    ConsumerEventStatus,
    DLQMessage,
    EventHeaders,
    EventLogDraft,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
    ProcessResult,
    RedactionResult,
    RelayMetrics,
    RelayResult,
    ReplayResult,
    SchemaRef,
)

__all__ = [
    "FALLBACK_SCHEMA_ID",
    "FALLBACK_SCHEMA_VERSION",
    "RELAY_CONSUMER_NAME",
    "ConsumerEventRecord",
    "ConsumerEventStatus",
    "DLQMessage",
    "DuplicateEventError",
    "EventHeaders",
    "EventLogDraft",
    "EventLogEntry",
    "InvalidEventTypeError",
    "InvalidPayloadError",
    "OutboxEvent",
    "OutboxStatus",
    "ProcessResult",
    "RedactionResult",
    "RelayMetrics",
    "RelayResult",
    "ReplayResult",
    "SchemaRef",
]
