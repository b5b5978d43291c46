"""Domain exceptions for the eventing bounded context.

These exceptions are raised for a single outbox row or log entry. The relay
and consumer runner contain them per row/event; they never abort a batch.
"""


class InvalidEventTypeError(ValueError):
    """Raised when an event type has fewer than two dot-separated segments.

    Event types must follow the ``<domain>.<name>.<version>`` convention so
    that a schema id and a version can be split off.
    """

    def __init__(self, event_type: str):
        super().__init__(f"Invalid event type format: {event_type}")
        self.event_type = event_type


class DuplicateEventError(Exception):
    """Raised when an event id is already present in the event log.

    The relay treats this as "already published", not as a failure.
    """

    def __init__(self, event_id: str):
        super().__init__(f"Event already published: {event_id}")
        self.event_id = event_id


class InvalidPayloadError(Exception):
    """Raised when a log entry payload does not match the expected schema."""

    def __init__(self, schema_id: str, errors: list[str]):
        super().__init__(f"Invalid payload for {schema_id}: {'; '.join(errors)}")
        self.schema_id = schema_id
        self.errors = errors
