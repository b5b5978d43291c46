"""Unit tests for outbox row builders."""

from datetime import UTC, datetime

from eventing.application.outbox_writer import (
    PAYLOAD_ENVELOPE_VERSION,
    build_outbox_event,
    generate_dedupe_key,
)
from eventing.domain.value_objects import OutboxStatus


class TestBuildOutboxEvent:
    def test_creates_pending_row(self):
        event = build_outbox_event("t1", "user.created.v1", {"user_id": "u1"})

        assert event.status == OutboxStatus.PENDING
        assert event.attempts == 0
        assert event.tenant_id == "t1"
        assert event.event_type == "user.created.v1"
        assert event.published_at is None
        assert event.created_at.tzinfo is not None

    def test_augments_payload_with_envelope_fields(self):
        occurred = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)

        event = build_outbox_event(
            "t1",
            "user.created.v1",
            {"user_id": "u1"},
            actor_user_id="admin",
            trace_id="trace-1",
            correlation_id="corr-1",
            occurred_at=occurred,
        )

        payload = event.payload
        assert payload["user_id"] == "u1"
        assert payload["event_type"] == "user.created.v1"
        assert payload["version"] == PAYLOAD_ENVELOPE_VERSION
        assert payload["occurred_at"] == occurred.isoformat()
        assert payload["tenant_id"] == "t1"
        assert payload["actor_user_id"] == "admin"
        assert payload["trace_id"] == "trace-1"
        assert payload["correlation_id"] == "corr-1"
        assert payload["event_id"]
        assert event.occurred_at == occurred

    def test_does_not_mutate_caller_payload(self):
        data = {"user_id": "u1"}

        build_outbox_event("t1", "user.created.v1", data)

        assert data == {"user_id": "u1"}

    def test_keeps_aggregate_and_dedupe_key(self):
        event = build_outbox_event(
            "t1", "user.created.v1", {}, aggregate_id="u1", dedupe_key="user:u1"
        )

        assert event.aggregate_id == "u1"
        assert event.dedupe_key == "user:u1"

    def test_each_row_gets_fresh_ids(self):
        first = build_outbox_event("t1", "user.created.v1", {})
        second = build_outbox_event("t1", "user.created.v1", {})

        assert first.id != second.id
        assert first.payload["event_id"] != second.payload["event_id"]


class TestGenerateDedupeKey:
    def test_joins_parts_with_colons(self):
        key = generate_dedupe_key("billing.invoice.paid.v1", "inv-1", "2024-05", 3)

        assert key == "billing.invoice.paid.v1:inv-1:2024-05:3"

    def test_without_extra_parts(self):
        assert generate_dedupe_key("user.created.v1", "u1") == "user.created.v1:u1"
