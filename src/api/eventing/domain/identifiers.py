"""Event identity and schema helpers.

Pure functions used by the relay to derive stable event ids, hash payloads
and split versioned event types into a schema id and version.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

from eventing.domain.exceptions import InvalidEventTypeError
from eventing.domain.value_objects import OutboxEvent, SchemaRef

# Namespace for event ids derived from outbox content (UUIDv5)
EVENT_ID_NAMESPACE: UUID = uuid5(NAMESPACE_URL, "https://buildflow.dev/event-log")


def canonical_json(payload: Any) -> str:
    """Serialize a payload to a stable JSON string.

    Keys are sorted and whitespace is stripped so the same logical payload
    always produces the same bytes, regardless of dict insertion order.
    Values JSON cannot represent (datetimes, UUIDs) fall back to ``str``.
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def payload_hash(payload: Any) -> str:
    """Return the sha256 hex digest of the canonical payload."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def parse_event_type(event_type: str) -> SchemaRef:
    """Split an event type into schema id and version.

    The last dot-separated segment is the version; everything before it is
    the schema id. For example ``"user.created.v1"`` becomes
    ``SchemaRef(schema_id="user.created", version="v1")``.

    Raises:
        InvalidEventTypeError: If there are fewer than two segments
    """
    parts = event_type.split(".")
    if len(parts) < 2 or not all(parts):
        raise InvalidEventTypeError(event_type)

    return SchemaRef(schema_id=".".join(parts[:-1]), version=parts[-1])


def derive_event_id(
    tenant_id: str,
    event_type: str,
    aggregate_id: str | None,
    payload: dict[str, Any],
) -> str:
    """Derive a deterministic event id from outbox content.

    The seed is ``tenant_id:event_type:aggregate_id:sha256(payload)``; the
    id is the UUIDv5 of that seed. Changing any of the four inputs changes
    the id, and re-deriving from the same row always reproduces it.
    """
    seed = f"{tenant_id}:{event_type}:{aggregate_id or ''}:{payload_hash(payload)}"
    return str(uuid5(EVENT_ID_NAMESPACE, seed))


def event_id_for(event: OutboxEvent) -> str:
    """Return the event id an outbox row publishes under.

    A caller-supplied dedupe key is used verbatim; otherwise the id is
    derived from the row content.
    """
    if event.dedupe_key:
        return event.dedupe_key
    return derive_event_id(
        event.tenant_id, event.event_type, event.aggregate_id, event.payload
    )
