"""Event activity projection, the built-in consumer of the event log.

Counts delivered events per tenant and schema in process memory and keeps
the latest sequence, occurrence time and actor for each pair. Payloads are
read through the envelope the outbox writer adds to every event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel

from eventing.application.envelope import parse_payload
from eventing.domain.exceptions import InvalidPayloadError
from eventing.domain.value_objects import EventLogEntry, ProcessResult

ACTIVITY_CONSUMER_NAME = "event-activity"


class EventEnvelope(BaseModel):
    """Envelope fields written by build_outbox_event."""

    event_type: str
    tenant_id: str
    occurred_at: datetime
    actor_user_id: str | None = None


@dataclass(frozen=True)
class SchemaActivity:
    """Delivered-event statistics for one tenant and schema."""

    tenant_id: str
    schema_id: str
    event_count: int
    last_sequence: int
    last_occurred_at: datetime
    last_actor_user_id: str | None = None


class EventActivityConsumer:
    """Projects event log entries into per-tenant schema activity.

    Entries without a valid envelope, or whose envelope names another
    tenant, are rejected and go to the DLQ. An entry at or below the last
    counted sequence for its pair is acknowledged without being counted
    again, so redelivery and replay do not inflate the counts.
    """

    def __init__(self) -> None:
        self._activity: dict[tuple[str, str], SchemaActivity] = {}

    async def process_event(self, entry: EventLogEntry) -> ProcessResult:
        try:
            envelope = parse_payload(entry, EventEnvelope)
        except InvalidPayloadError as e:
            return ProcessResult.rejected(str(e))

        if envelope.tenant_id != entry.tenant_id:
            return ProcessResult.rejected(
                f"Envelope tenant {envelope.tenant_id} does not match {entry.tenant_id}"
            )

        key = (entry.tenant_id, entry.schema_id)
        current = self._activity.get(key)
        if current is not None and entry.sequence <= current.last_sequence:
            return ProcessResult.ok()

        self._activity[key] = SchemaActivity(
            tenant_id=entry.tenant_id,
            schema_id=entry.schema_id,
            event_count=(current.event_count if current else 0) + 1,
            last_sequence=entry.sequence,
            last_occurred_at=envelope.occurred_at,
            last_actor_user_id=envelope.actor_user_id,
        )
        return ProcessResult.ok()

    def snapshot(self, tenant_id: str | None = None) -> list[SchemaActivity]:
        """Current activity, ordered by tenant then schema id."""
        return [
            activity
            for key, activity in sorted(self._activity.items())
            if tenant_id is None or key[0] == tenant_id
        ]
