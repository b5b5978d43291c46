"""Typed access to event payloads at the consumer boundary.

Consumers receive ``payload_redacted`` as a plain dict. ``parse_payload``
validates it against a pydantic model so that a consumer works with typed
fields and can reject malformed events explicitly:

    class TranscriptReady(BaseModel):
        meeting_id: str
        transcript_id: str

    async def process_event(self, entry):
        try:
            payload = parse_payload(entry, TranscriptReady)
        except InvalidPayloadError as e:
            return ProcessResult.rejected(str(e))
        ...
"""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from eventing.domain.exceptions import InvalidPayloadError
from eventing.domain.value_objects import EventLogEntry

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(entry: EventLogEntry, model: type[ModelT]) -> ModelT:
    """Validate an entry's redacted payload against a pydantic model.

    Extra payload keys (such as the envelope fields added by the outbox
    writer) are ignored unless the model forbids them.

    Raises:
        InvalidPayloadError: If validation fails
    """
    try:
        return model.model_validate(entry.payload_redacted)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        raise InvalidPayloadError(entry.schema_id, errors) from e
