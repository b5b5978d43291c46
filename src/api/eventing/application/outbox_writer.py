"""Builders for outbox rows.

Domain services call ``build_outbox_event`` while handling a command and
hand the result to ``IOutboxRepository.append`` inside the same
transaction as their own changes. Nothing here performs I/O.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from eventing.domain.value_objects import OutboxEvent, OutboxStatus

# Payload envelope version written alongside every event
PAYLOAD_ENVELOPE_VERSION = 1


def build_outbox_event(
    tenant_id: str,
    event_type: str,
    payload: dict[str, Any],
    *,
    aggregate_id: str | None = None,
    dedupe_key: str | None = None,
    actor_user_id: str | None = None,
    trace_id: str | None = None,
    correlation_id: str | None = None,
    occurred_at: datetime | None = None,
) -> OutboxEvent:
    """Create a pending outbox row for a domain change.

    The payload is augmented with envelope fields (a fresh ``event_id``,
    ``event_type``, ``version``, ``occurred_at``, ``tenant_id`` and the
    actor/trace/correlation ids) so that consumers can read them without
    looking at headers. Caller keys are preserved unless they collide with
    an envelope field.

    Args:
        tenant_id: Tenant that owns the change
        event_type: Versioned type string, e.g. "foundation.user.created.v1"
        payload: Event data
        aggregate_id: Id of the aggregate that changed (if any)
        dedupe_key: Idempotency key; becomes the published event id
        actor_user_id: User that triggered the change (if any)
        trace_id: Trace id to propagate (if any)
        correlation_id: Correlation id to propagate (if any)
        occurred_at: When the change happened (defaults to now, UTC)

    Returns:
        An OutboxEvent in pending status with zero attempts
    """
    now = datetime.now(UTC)
    occurred = occurred_at or now

    augmented = {
        **payload,
        "event_id": str(uuid4()),
        "event_type": event_type,
        "version": PAYLOAD_ENVELOPE_VERSION,
        "occurred_at": occurred.isoformat(),
        "tenant_id": tenant_id,
        "actor_user_id": actor_user_id,
        "trace_id": trace_id,
        "correlation_id": correlation_id,
    }

    return OutboxEvent(
        id=uuid4(),
        tenant_id=tenant_id,
        event_type=event_type,
        payload=augmented,
        occurred_at=occurred,
        created_at=now,
        aggregate_id=aggregate_id,
        dedupe_key=dedupe_key,
        status=OutboxStatus.PENDING,
        attempts=0,
    )


def generate_dedupe_key(event_type: str, aggregate_id: str, *parts: Any) -> str:
    """Build a dedupe key from an event type, an aggregate id and extra parts.

    Example:
        generate_dedupe_key("billing.invoice.paid.v1", "inv-1", "2024-05")
        -> "billing.invoice.paid.v1:inv-1:2024-05"
    """
    return ":".join([event_type, aggregate_id, *(str(part) for part in parts)])
