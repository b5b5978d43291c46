"""Unit tests for eventing value objects."""

from dataclasses import FrozenInstanceError
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from eventing.domain.value_objects import (
    ConsumerEventRecord,
    ConsumerEventStatus,
    EventHeaders,
    EventLogDraft,
    EventLogEntry,
    OutboxEvent,
    OutboxStatus,
    ProcessResult,
    RelayResult,
)


class TestOutboxEvent:
    def _event(self, **overrides) -> OutboxEvent:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        return OutboxEvent(
            id=uuid4(),
            tenant_id="t1",
            event_type="user.created.v1",
            payload={},
            occurred_at=now,
            created_at=now,
            **overrides,
        )

    def test_defaults_to_pending_with_no_attempts(self):
        event = self._event()
        assert event.status == OutboxStatus.PENDING
        assert event.attempts == 0
        assert not event.is_published
        assert not event.is_failed

    def test_status_properties(self):
        assert self._event(status=OutboxStatus.PUBLISHED).is_published
        assert self._event(status=OutboxStatus.FAILED).is_failed

    def test_is_immutable(self):
        with pytest.raises(FrozenInstanceError):
            self._event().attempts = 3  # type: ignore[misc]


class TestEventHeaders:
    def test_round_trips_through_dict(self):
        headers = EventHeaders(
            tenant_id="t1",
            trace_id="tr",
            correlation_id="co",
            actor_user_id="u1",
            pii_tags=("sensitive_field",),
        )

        assert EventHeaders.from_dict(headers.to_dict(), "other") == headers

    def test_from_empty_dict_uses_entry_tenant(self):
        headers = EventHeaders.from_dict({}, "t9")

        assert headers.tenant_id == "t9"
        assert headers.trace_id is None
        assert headers.pii_tags == ()


class TestEventLogEntry:
    def test_from_draft_assigns_sequence(self):
        draft = EventLogDraft(
            event_id="e1",
            tenant_id="t1",
            schema_id="user.created",
            schema_version="v1",
            headers=EventHeaders(tenant_id="t1"),
            payload_redacted={"a": 1},
            payload_hash="h",
            published_at=datetime(2026, 1, 1, tzinfo=UTC),
        )

        entry = EventLogEntry.from_draft(draft, sequence=42)

        assert entry.sequence == 42
        assert entry.event_id == "e1"
        assert entry.schema_id == "user.created"
        assert entry.payload_redacted == {"a": 1}


class TestConsumerEventRecord:
    def test_completed_and_dead_lettered_flags(self):
        completed = ConsumerEventRecord("c", "e", 1, ConsumerEventStatus.COMPLETED)
        failed = ConsumerEventRecord("c", "e", 1, ConsumerEventStatus.FAILED)
        pending = ConsumerEventRecord("c", "e", 1, ConsumerEventStatus.PENDING)

        assert completed.is_completed and not completed.is_dead_lettered
        assert failed.is_dead_lettered and not failed.is_completed
        assert not pending.is_completed and not pending.is_dead_lettered


class TestProcessResult:
    def test_ok(self):
        assert ProcessResult.ok() == ProcessResult(success=True)

    def test_retry_is_retryable(self):
        result = ProcessResult.retry("timeout")
        assert not result.success
        assert result.should_retry
        assert result.error == "timeout"

    def test_rejected_is_not_retryable(self):
        result = ProcessResult.rejected("bad payload")
        assert not result.success
        assert not result.should_retry


def test_relay_result_total():
    assert RelayResult(processed=2, failed=1, skipped=3).total == 6
