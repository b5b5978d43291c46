"""Observability probe for the event relay.

Following Domain Oriented Observability, probes capture domain-significant
events and metrics without cluttering relay logic with logging concerns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

import structlog

if TYPE_CHECKING:
    from eventing.domain.value_objects import RelayResult
    from shared_kernel.observability_context import ObservationContext


class EventRelayProbe(Protocol):
    """Protocol for event relay observability.

    Implementations can log, emit metrics, or send traces.
    """

    def event_published(self, outbox_id: UUID, event_id: str, sequence: int) -> None:
        """Called when an outbox row is appended to the event log."""
        ...

    def duplicate_event_skipped(self, outbox_id: UUID, event_id: str) -> None:
        """Called when the event id is already in the log."""
        ...

    def relay_attempt_failed(self, outbox_id: UUID, error: str, attempts: int) -> None:
        """Called when publishing fails and the row will be retried."""
        ...

    def event_dead_lettered(self, outbox_id: UUID, event_type: str, error: str) -> None:
        """Called when a row exhausts its attempts and is moved to the DLQ."""
        ...

    def dead_letter_write_failed(self, outbox_id: UUID, error: str) -> None:
        """Called when writing the DLQ escalation itself fails."""
        ...

    def failure_record_failed(self, outbox_id: UUID, error: str) -> None:
        """Called when persisting a failed attempt itself fails."""
        ...

    def batch_relayed(self, result: RelayResult) -> None:
        """Called after each relay batch."""
        ...

    def with_context(self, context: ObservationContext) -> EventRelayProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultEventRelayProbe:
    """Default implementation using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger().bind(component="event_relay")
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultEventRelayProbe:
        return DefaultEventRelayProbe(logger=self._logger, context=context)

    def event_published(self, outbox_id: UUID, event_id: str, sequence: int) -> None:
        self._logger.info(
            "event_relay_event_published",
            outbox_id=str(outbox_id),
            event_id=event_id,
            sequence=sequence,
            **self._get_context_kwargs(),
        )

    def duplicate_event_skipped(self, outbox_id: UUID, event_id: str) -> None:
        self._logger.info(
            "event_relay_duplicate_skipped",
            outbox_id=str(outbox_id),
            event_id=event_id,
            **self._get_context_kwargs(),
        )

    def relay_attempt_failed(self, outbox_id: UUID, error: str, attempts: int) -> None:
        self._logger.warning(
            "event_relay_attempt_failed",
            outbox_id=str(outbox_id),
            error=error,
            attempts=attempts,
            **self._get_context_kwargs(),
        )

    def event_dead_lettered(self, outbox_id: UUID, event_type: str, error: str) -> None:
        self._logger.error(
            "event_relay_event_dead_lettered",
            outbox_id=str(outbox_id),
            event_type=event_type,
            error=error,
            **self._get_context_kwargs(),
        )

    def dead_letter_write_failed(self, outbox_id: UUID, error: str) -> None:
        self._logger.error(
            "event_relay_dead_letter_write_failed",
            outbox_id=str(outbox_id),
            error=error,
            **self._get_context_kwargs(),
        )

    def failure_record_failed(self, outbox_id: UUID, error: str) -> None:
        self._logger.error(
            "event_relay_failure_record_failed",
            outbox_id=str(outbox_id),
            error=error,
            **self._get_context_kwargs(),
        )

    def batch_relayed(self, result: RelayResult) -> None:
        """Log batch totals; empty batches are not logged."""
        if result.processed > 0 or result.failed > 0:
            self._logger.info(
                "event_relay_batch_relayed",
                processed=result.processed,
                failed=result.failed,
                skipped=result.skipped,
                **self._get_context_kwargs(),
            )
