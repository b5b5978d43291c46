"""Unit tests for the event activity consumer."""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from eventing.application.activity import EventActivityConsumer
from eventing.application.consumer import ConsumerConfig, ConsumerRunner
from eventing.domain.value_objects import (
    ConsumerEventStatus,
    EventHeaders,
    EventLogDraft,
)


def envelope(tenant_id: str = "tenant-1", actor: str | None = "u1", **extra) -> dict:
    return {
        "event_type": "taskflow.task.created.v1",
        "tenant_id": tenant_id,
        "occurred_at": "2026-03-01T12:00:00+00:00",
        "actor_user_id": actor,
        **extra,
    }


@pytest.fixture
def activity():
    return EventActivityConsumer()


class TestProcessEvent:
    @pytest.mark.asyncio
    async def test_counts_events_per_tenant_and_schema(self, activity, make_log_entry):
        await activity.process_event(make_log_entry(1, payload=envelope(actor="u1")))
        await activity.process_event(make_log_entry(2, payload=envelope(actor="u2")))
        await activity.process_event(
            make_log_entry(3, "meetingflow.meeting.ended", payload=envelope())
        )

        [meetings, tasks] = activity.snapshot()
        assert meetings.schema_id == "meetingflow.meeting.ended"
        assert meetings.event_count == 1
        assert tasks.event_count == 2
        assert tasks.last_sequence == 2
        assert tasks.last_actor_user_id == "u2"
        assert tasks.last_occurred_at == datetime(2026, 3, 1, 12, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_rejects_payload_without_envelope(self, activity, make_log_entry):
        result = await activity.process_event(make_log_entry(1, payload={"n": 1}))

        assert not result.success
        assert not result.should_retry
        assert "occurred_at" in result.error
        assert activity.snapshot() == []

    @pytest.mark.asyncio
    async def test_rejects_envelope_for_another_tenant(self, activity, make_log_entry):
        result = await activity.process_event(
            make_log_entry(1, tenant_id="t1", payload=envelope(tenant_id="t2"))
        )

        assert not result.success
        assert not result.should_retry
        assert "does not match" in result.error

    @pytest.mark.asyncio
    async def test_redelivered_entry_is_not_counted_twice(self, activity, make_log_entry):
        entry = make_log_entry(1, payload=envelope())

        first = await activity.process_event(entry)
        second = await activity.process_event(entry)

        assert first.success
        assert second.success
        [item] = activity.snapshot()
        assert item.event_count == 1


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_filters_by_tenant_in_schema_order(self, activity, make_log_entry):
        await activity.process_event(
            make_log_entry(1, "taskflow.task.created", tenant_id="t2", payload=envelope("t2"))
        )
        await activity.process_event(
            make_log_entry(2, "taskflow.task.closed", tenant_id="t1", payload=envelope("t1"))
        )
        await activity.process_event(
            make_log_entry(3, "billing.invoice.paid", tenant_id="t1", payload=envelope("t1"))
        )

        snapshot = activity.snapshot("t1")

        assert [item.schema_id for item in snapshot] == [
            "billing.invoice.paid",
            "taskflow.task.closed",
        ]
        assert [item.tenant_id for item in activity.snapshot()] == ["t1", "t1", "t2"]


class TestThroughRunner:
    @pytest.mark.asyncio
    async def test_malformed_entry_goes_to_dlq(self, activity, memory_store):
        for event_id, payload in (("e1", envelope()), ("e2", {"n": 2})):
            draft = EventLogDraft(
                event_id=event_id,
                tenant_id="tenant-1",
                schema_id="taskflow.task.created",
                schema_version="v1",
                headers=EventHeaders(tenant_id="tenant-1"),
                payload_redacted=payload,
                payload_hash="0" * 64,
                published_at=datetime.now(UTC),
            )
            await memory_store.relay_repository.publish(uuid4(), draft)
        runner = ConsumerRunner(
            activity,
            ConsumerConfig(name="event-activity", schema_id_prefix=""),
            memory_store.consumer_repository,
            probe=MagicMock(),
        )

        advanced = await runner.poll_once()

        assert advanced == 2
        [item] = activity.snapshot()
        assert item.event_count == 1
        [message] = memory_store.dlq_messages
        assert message.event_id == "e2"
        assert message.consumer_name == "event-activity"
        record = await memory_store.consumer_repository.get_record("event-activity", "e2")
        assert record.status == ConsumerEventStatus.FAILED
