"""Observability probe for event consumers.

Captures consumer lifecycle, per-event outcomes and replay progress. All
events carry the consumer name so several consumers can share one log
stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from eventing.domain.value_objects import ReplayResult
    from shared_kernel.observability_context import ObservationContext


class ConsumerProbe(Protocol):
    """Protocol for consumer observability."""

    def consumer_started(
        self, consumer_name: str, checkpoint: int, poll_interval_seconds: float
    ) -> None:
        """Called when a consumer starts polling."""
        ...

    def consumer_already_running(self, consumer_name: str) -> None:
        """Called when start() is invoked on a running consumer."""
        ...

    def consumer_stopped(self, consumer_name: str) -> None:
        """Called when a consumer stops."""
        ...

    def event_completed(self, consumer_name: str, event_id: str, sequence: int) -> None:
        """Called when an event is processed successfully."""
        ...

    def event_skipped(self, consumer_name: str, event_id: str, sequence: int) -> None:
        """Called when an already-handled event is skipped on re-poll."""
        ...

    def event_failed(
        self, consumer_name: str, event_id: str, error: str, attempts: int
    ) -> None:
        """Called when processing fails and the event will be retried."""
        ...

    def event_dead_lettered(
        self, consumer_name: str, event_id: str, sequence: int, reason: str
    ) -> None:
        """Called when an event is moved to the DLQ."""
        ...

    def dead_letter_write_failed(
        self, consumer_name: str, event_id: str, error: str
    ) -> None:
        """Called when writing the DLQ escalation itself fails."""
        ...

    def poll_cycle_failed(self, consumer_name: str, error: str) -> None:
        """Called when a poll cycle fails outside per-event handling."""
        ...

    def replay_started(
        self, consumer_name: str, from_sequence: int, to_sequence: int | None
    ) -> None:
        """Called when a replay begins."""
        ...

    def replay_completed(self, consumer_name: str, result: ReplayResult) -> None:
        """Called when a replay finishes."""
        ...

    def with_context(self, context: ObservationContext) -> ConsumerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConsumerProbe:
    """Default implementation using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger().bind(component="event_consumer")
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultConsumerProbe:
        return DefaultConsumerProbe(logger=self._logger, context=context)

    def consumer_started(
        self, consumer_name: str, checkpoint: int, poll_interval_seconds: float
    ) -> None:
        self._logger.info(
            "consumer_started",
            consumer=consumer_name,
            checkpoint=checkpoint,
            poll_interval_seconds=poll_interval_seconds,
        )

    def consumer_already_running(self, consumer_name: str) -> None:
        self._logger.warning("consumer_already_running", consumer=consumer_name)

    def consumer_stopped(self, consumer_name: str) -> None:
        self._logger.info("consumer_stopped", consumer=consumer_name)

    def event_completed(self, consumer_name: str, event_id: str, sequence: int) -> None:
        self._logger.debug(
            "consumer_event_completed",
            consumer=consumer_name,
            event_id=event_id,
            sequence=sequence,
            **self._get_context_kwargs(),
        )

    def event_skipped(self, consumer_name: str, event_id: str, sequence: int) -> None:
        self._logger.debug(
            "consumer_event_skipped",
            consumer=consumer_name,
            event_id=event_id,
            sequence=sequence,
            **self._get_context_kwargs(),
        )

    def event_failed(
        self, consumer_name: str, event_id: str, error: str, attempts: int
    ) -> None:
        self._logger.warning(
            "consumer_event_failed",
            consumer=consumer_name,
            event_id=event_id,
            error=error,
            attempts=attempts,
            **self._get_context_kwargs(),
        )

    def event_dead_lettered(
        self, consumer_name: str, event_id: str, sequence: int, reason: str
    ) -> None:
        self._logger.error(
            "consumer_event_dead_lettered",
            consumer=consumer_name,
            event_id=event_id,
            sequence=sequence,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def dead_letter_write_failed(
        self, consumer_name: str, event_id: str, error: str
    ) -> None:
        self._logger.error(
            "consumer_dead_letter_write_failed",
            consumer=consumer_name,
            event_id=event_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def poll_cycle_failed(self, consumer_name: str, error: str) -> None:
        self._logger.error("consumer_poll_cycle_failed", consumer=consumer_name, error=error)

    def replay_started(
        self, consumer_name: str, from_sequence: int, to_sequence: int | None
    ) -> None:
        self._logger.info(
            "consumer_replay_started",
            consumer=consumer_name,
            from_sequence=from_sequence,
            to_sequence=to_sequence,
        )

    def replay_completed(self, consumer_name: str, result: ReplayResult) -> None:
        self._logger.info(
            "consumer_replay_completed",
            consumer=consumer_name,
            replayed=result.replayed,
            succeeded=result.succeeded,
            failed=result.failed,
        )
