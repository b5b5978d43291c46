"""Unit tests for event identity and schema parsing."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from eventing.domain.exceptions import InvalidEventTypeError
from eventing.domain.identifiers import (
    canonical_json,
    derive_event_id,
    event_id_for,
    parse_event_type,
    payload_hash,
)
from eventing.domain.value_objects import OutboxEvent, SchemaRef


class TestParseEventType:
    """Tests for parse_event_type()."""

    def test_splits_version_from_schema_id(self):
        assert parse_event_type("user.created.v1") == SchemaRef(
            schema_id="user.created", version="v1"
        )

    def test_keeps_multi_segment_schema_id(self):
        ref = parse_event_type("meetingflow.transcript.ready.v2")
        assert ref.schema_id == "meetingflow.transcript.ready"
        assert ref.version == "v2"

    def test_two_segments_are_enough(self):
        assert parse_event_type("ping.v1") == SchemaRef(schema_id="ping", version="v1")

    @pytest.mark.parametrize("event_type", ["created", "", "user..v1", "user.created."])
    def test_rejects_malformed_types(self, event_type):
        with pytest.raises(InvalidEventTypeError) as exc_info:
            parse_event_type(event_type)

        assert exc_info.value.event_type == event_type
        assert "Invalid event type format" in str(exc_info.value)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_event_type("nodots")


class TestPayloadHash:
    """Tests for payload hashing."""

    def test_is_sha256_hex(self):
        digest = payload_hash({"a": 1})
        assert len(digest) == 64
        int(digest, 16)

    def test_ignores_key_order(self):
        assert payload_hash({"a": 1, "b": 2}) == payload_hash({"b": 2, "a": 1})

    def test_differs_for_different_payloads(self):
        assert payload_hash({"a": 1}) != payload_hash({"a": 2})

    def test_canonical_json_is_compact_and_sorted(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_canonical_json_stringifies_datetimes(self):
        moment = datetime(2026, 1, 1, tzinfo=UTC)
        assert canonical_json({"at": moment}) == f'{{"at":"{moment}"}}'


class TestDeriveEventId:
    """Tests for deterministic event ids."""

    def test_is_deterministic(self):
        first = derive_event_id("t1", "user.created.v1", "agg-1", {"x": 1})
        second = derive_event_id("t1", "user.created.v1", "agg-1", {"x": 1})
        assert first == second

    def test_is_a_version_5_uuid(self):
        event_id = derive_event_id("t1", "user.created.v1", None, {"x": 1})
        assert UUID(event_id).version == 5

    @pytest.mark.parametrize(
        "changed",
        [
            ("t2", "user.created.v1", "agg-1", {"x": 1}),
            ("t1", "user.updated.v1", "agg-1", {"x": 1}),
            ("t1", "user.created.v1", "agg-2", {"x": 1}),
            ("t1", "user.created.v1", "agg-1", {"x": 2}),
        ],
    )
    def test_changes_when_any_input_changes(self, changed):
        base = derive_event_id("t1", "user.created.v1", "agg-1", {"x": 1})
        assert derive_event_id(*changed) != base

    def test_missing_aggregate_id_matches_empty(self):
        assert derive_event_id("t1", "a.v1", None, {}) == derive_event_id(
            "t1", "a.v1", "", {}
        )


class TestEventIdFor:
    """Tests for event_id_for()."""

    def _event(self, **overrides) -> OutboxEvent:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        fields = {
            "id": uuid4(),
            "tenant_id": "t1",
            "event_type": "user.created.v1",
            "payload": {"user_id": "u1"},
            "occurred_at": now,
            "created_at": now,
        }
        fields.update(overrides)
        return OutboxEvent(**fields)

    def test_uses_dedupe_key_verbatim(self):
        assert event_id_for(self._event(dedupe_key="user:u1:created")) == "user:u1:created"

    def test_derives_id_without_dedupe_key(self):
        event = self._event(aggregate_id="u1")
        assert event_id_for(event) == derive_event_id(
            "t1", "user.created.v1", "u1", {"user_id": "u1"}
        )

    def test_ignores_storage_identity(self):
        assert event_id_for(self._event()) == event_id_for(self._event())
