"""Event relay: moves pending outbox rows into the event log.

The relay is storage-agnostic. It reads and writes through IRelayRepository
and never holds a transaction open across rows, so one bad row cannot
block or roll back its neighbours.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from eventing.application.observability import (
    DefaultEventRelayProbe,
    EventRelayProbe,
)
from eventing.domain.exceptions import DuplicateEventError, InvalidEventTypeError
from eventing.domain.identifiers import event_id_for, parse_event_type, payload_hash
from eventing.domain.redaction import SensitiveFieldRedactor
from eventing.domain.value_objects import (
    FALLBACK_SCHEMA_ID,
    FALLBACK_SCHEMA_VERSION,
    EventHeaders,
    EventLogDraft,
    OutboxEvent,
    RelayResult,
    SchemaRef,
)
from eventing.ports.consumers import Redactor
from eventing.ports.repositories import IRelayRepository
from shared_kernel.observability_context import ObservationContext

DEFAULT_BATCH_SIZE = 15
DEFAULT_MAX_ATTEMPTS = 10


class _Outcome(StrEnum):
    PUBLISHED = "published"
    SKIPPED = "skipped"
    FAILED = "failed"


class EventRelay:
    """Publishes pending outbox rows to the event log, one batch per call.

    Each row is handled independently:

    1. The event id is the row's dedupe key, or a UUID derived from its
       content.
    2. If the event log already holds that id, the row is marked published
       and counted as skipped.
    3. Otherwise the event type is parsed, headers are lifted from the
       payload, the payload is redacted and hashed, and the log entry is
       appended while the row is marked published, atomically.
    4. On any error the attempt counter is incremented. Reaching
       ``max_attempts`` escalates the row to the DLQ; below it the row
       stays pending for the next call.
    """

    def __init__(
        self,
        repository: IRelayRepository,
        redactor: Redactor | None = None,
        probe: EventRelayProbe | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Initialize the relay.

        Args:
            repository: Storage for the outbox, the event log and the DLQ
            redactor: Payload redactor (defaults to SensitiveFieldRedactor)
            probe: Observability probe
            batch_size: Maximum rows handled per relay() call
            max_attempts: Attempts after which a row is dead-lettered
        """
        self._repository = repository
        self._redactor = redactor or SensitiveFieldRedactor()
        self._probe = probe or DefaultEventRelayProbe()
        self._batch_size = batch_size
        self._max_attempts = max_attempts

    async def relay(self) -> RelayResult:
        """Process one batch of pending outbox rows.

        Returns:
            Counts of rows published, failed and skipped in this batch
        """
        events = await self._repository.fetch_pending(
            limit=self._batch_size, max_attempts=self._max_attempts
        )

        counts = {outcome: 0 for outcome in _Outcome}
        for event in events:
            outcome = await self._relay_event(event)
            counts[outcome] += 1

        result = RelayResult(
            processed=counts[_Outcome.PUBLISHED],
            failed=counts[_Outcome.FAILED],
            skipped=counts[_Outcome.SKIPPED],
        )
        self._probe.batch_relayed(result)
        return result

    def _event_probe(self, event: OutboxEvent) -> EventRelayProbe:
        """Probe bound to the row's tenant and the trace ids in its payload."""
        return self._probe.with_context(
            ObservationContext(
                tenant_id=event.tenant_id,
                trace_id=event.payload.get("trace_id"),
                correlation_id=event.payload.get("correlation_id"),
            )
        )

    async def _relay_event(self, event: OutboxEvent) -> _Outcome:
        probe = self._event_probe(event)
        try:
            event_id = event_id_for(event)

            existing = await self._repository.get_event(event_id)
            if existing is not None:
                await self._repository.mark_published(event.id, datetime.now(UTC))
                probe.duplicate_event_skipped(event.id, event_id)
                return _Outcome.SKIPPED

            schema = parse_event_type(event.event_type)
            draft = self._build_draft(event, event_id, schema)

            try:
                entry = await self._repository.publish(event.id, draft)
            except DuplicateEventError:
                # Another relay inserted the same id between lookup and insert
                await self._repository.mark_published(event.id, datetime.now(UTC))
                probe.duplicate_event_skipped(event.id, event_id)
                return _Outcome.SKIPPED

            probe.event_published(event.id, entry.event_id, entry.sequence)
            return _Outcome.PUBLISHED

        except Exception as e:
            await self._handle_failure(event, str(e) or type(e).__name__, probe)
            return _Outcome.FAILED

    def _build_draft(
        self,
        event: OutboxEvent,
        event_id: str,
        schema: SchemaRef,
        include_payload_headers: bool = True,
    ) -> EventLogDraft:
        redaction = self._redactor.redact(event.payload)
        payload = event.payload

        if include_payload_headers:
            headers = EventHeaders(
                tenant_id=event.tenant_id,
                trace_id=payload.get("trace_id"),
                correlation_id=payload.get("correlation_id"),
                actor_user_id=payload.get("actor_user_id"),
                pii_tags=redaction.pii_tags,
            )
        else:
            headers = EventHeaders(tenant_id=event.tenant_id, pii_tags=redaction.pii_tags)

        return EventLogDraft(
            event_id=event_id,
            tenant_id=event.tenant_id,
            schema_id=schema.schema_id,
            schema_version=schema.version,
            headers=headers,
            payload_redacted=redaction.redacted_payload,
            payload_hash=payload_hash(payload),
            published_at=datetime.now(UTC),
        )

    async def _handle_failure(
        self, event: OutboxEvent, error: str, probe: EventRelayProbe
    ) -> None:
        """Record a failed attempt, escalating to the DLQ at the ceiling.

        If the payload cannot be dead-lettered, the row is dead-lettered with
        an empty payload instead. If that write fails too the row is left
        untouched, so the next relay() call retries the whole step.
        """
        attempts = event.attempts + 1

        if attempts < self._max_attempts:
            try:
                await self._repository.record_failure(event.id, attempts, error)
            except Exception as e:
                probe.failure_record_failed(event.id, str(e))
                return
            probe.relay_attempt_failed(event.id, error, attempts)
            return

        try:
            schema = parse_event_type(event.event_type)
        except InvalidEventTypeError:
            schema = SchemaRef(schema_id=FALLBACK_SCHEMA_ID, version=FALLBACK_SCHEMA_VERSION)

        fallback_id = str(uuid4())
        try:
            draft = self._build_draft(
                event, fallback_id, schema, include_payload_headers=False
            )
            await self._repository.dead_letter(
                event.id,
                attempts=attempts,
                error=error,
                draft=draft,
                payload_snapshot=event.payload,
            )
        except Exception:
            # The payload may be what breaks the write; dead-letter without it
            try:
                await self._repository.dead_letter(
                    event.id,
                    attempts=attempts,
                    error=error,
                    draft=self._bare_draft(event, fallback_id, schema),
                    payload_snapshot={},
                )
            except Exception as e:
                probe.dead_letter_write_failed(event.id, str(e))
                return

        probe.event_dead_lettered(event.id, event.event_type, error)

    def _bare_draft(
        self, event: OutboxEvent, event_id: str, schema: SchemaRef
    ) -> EventLogDraft:
        return EventLogDraft(
            event_id=event_id,
            tenant_id=event.tenant_id,
            schema_id=schema.schema_id,
            schema_version=schema.version,
            headers=EventHeaders(tenant_id=event.tenant_id),
            payload_redacted={},
            payload_hash=payload_hash({}),
            published_at=datetime.now(UTC),
        )
