"""Collaborator protocols for the event pipeline.

Concrete consumers and redactors are plugged into the pipeline through
these protocols; the pipeline itself stays unaware of specific domain
events and payload shapes.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from eventing.domain.value_objects import EventLogEntry, ProcessResult, RedactionResult


@runtime_checkable
class EventConsumer(Protocol):
    """Business logic for one subscription.

    The consumer runner owns polling, checkpointing, retries and DLQ
    escalation; an implementation only decides what a single event means.
    """

    async def process_event(self, entry: EventLogEntry) -> ProcessResult:
        """Handle one event from the log.

        Returning ``ProcessResult.retry(...)`` (or raising) schedules a
        retry on the next poll; ``ProcessResult.rejected(...)`` sends the
        event straight to the DLQ.
        """
        ...


@runtime_checkable
class Redactor(Protocol):
    """Masks sensitive values before a payload is written to the log.

    Implementations must be pure and must not raise on well-formed but
    unexpected payload shapes.
    """

    def redact(self, payload: dict[str, Any]) -> RedactionResult:
        """Return the redacted payload and the PII tags that were found."""
        ...
