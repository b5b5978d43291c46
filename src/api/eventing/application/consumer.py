"""Consumer runner: polling, checkpointing, retries and DLQ for one consumer.

A consumer supplies only ``process_event``; the runner wraps it with the
subscription filter, per-event bookkeeping and the poll loop. Runners are
composed with consumers rather than inherited from.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from eventing.application.observability import ConsumerProbe, DefaultConsumerProbe
from eventing.domain.value_objects import EventLogEntry, ProcessResult, ReplayResult
from eventing.ports.consumers import EventConsumer
from eventing.ports.repositories import IConsumerRepository
from shared_kernel.observability_context import ObservationContext

MAX_ATTEMPTS_EXCEEDED = "Max attempts exceeded"


@dataclass(frozen=True)
class ConsumerConfig:
    """Static configuration of a consumer.

    Attributes:
        name: Unique consumer name; keys checkpoints and DLQ messages
        schema_id_prefix: Events whose schema id starts with this are delivered
        batch_size: Maximum events handled per poll
        poll_interval_seconds: Delay between polls
        max_attempts: Attempts after which an event is dead-lettered
    """

    name: str
    schema_id_prefix: str
    batch_size: int = 10
    poll_interval_seconds: float = 5.0
    max_attempts: int = 10


class _Outcome(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    DEAD_LETTERED = "dead_lettered"
    RETRY = "retry"


class ConsumerRunner:
    """Drives an EventConsumer over the event log.

    Events are read in ascending sequence order after an in-memory
    checkpoint. The checkpoint advances past completed, skipped and
    dead-lettered events. A retryable failure ends the current poll, so an
    event is never processed ahead of an earlier one that is still being
    retried.
    """

    def __init__(
        self,
        consumer: EventConsumer,
        config: ConsumerConfig,
        repository: IConsumerRepository,
        probe: ConsumerProbe | None = None,
    ) -> None:
        self._consumer = consumer
        self._config = config
        self._repository = repository
        self._probe = probe or DefaultConsumerProbe()
        self._checkpoint: int | None = None
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> ConsumerConfig:
        return self._config

    @property
    def checkpoint(self) -> int | None:
        """Highest sequence this runner has moved past (None before loading)."""
        return self._checkpoint

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def matches_subscription(self, schema_id: str) -> bool:
        """Check if a schema id falls under this consumer's subscription."""
        return schema_id.startswith(self._config.schema_id_prefix)

    async def start(self) -> None:
        """Load the checkpoint and start polling.

        The first poll runs immediately; subsequent polls run every
        ``poll_interval_seconds``. Calling start() on a running consumer
        only logs a warning.
        """
        if self.is_running:
            self._probe.consumer_already_running(self.name)
            return

        self._checkpoint = await self._load_checkpoint()
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._poll_loop(self._stop_event))
        self._probe.consumer_started(
            self.name, self._checkpoint, self._config.poll_interval_seconds
        )

    async def stop(self) -> None:
        """Stop polling, letting an in-flight poll finish."""
        if self._task is None or self._stop_event is None:
            return

        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None
        self._probe.consumer_stopped(self.name)

    async def _load_checkpoint(self) -> int:
        """Derive the checkpoint from storage.

        The last completed sequence is held below any event still pending or
        processing, so an unfinished event is redelivered rather than skipped.
        """
        checkpoint = await self._repository.last_completed_sequence(self.name)
        unfinished = await self._repository.first_unfinished_sequence(self.name)
        if unfinished is not None:
            checkpoint = min(checkpoint, unfinished - 1)
        return checkpoint

    async def _poll_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                self._probe.poll_cycle_failed(self.name, str(e))

            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._config.poll_interval_seconds
                )
            except TimeoutError:
                pass

    async def poll_once(self) -> int:
        """Handle one batch of events after the checkpoint.

        Returns:
            Number of events the checkpoint moved past
        """
        if self._checkpoint is None:
            self._checkpoint = await self._load_checkpoint()

        entries = await self._repository.fetch_after(
            self._checkpoint, self._config.schema_id_prefix, self._config.batch_size
        )

        advanced = 0
        for entry in entries:
            if not self.matches_subscription(entry.schema_id):
                continue

            outcome = await self._handle_event(entry)
            if outcome is _Outcome.RETRY:
                break

            self._checkpoint = max(self._checkpoint, entry.sequence)
            advanced += 1

        return advanced

    def _event_probe(self, entry: EventLogEntry) -> ConsumerProbe:
        """Probe bound to the entry's tenant and trace headers."""
        return self._probe.with_context(
            ObservationContext(
                tenant_id=entry.headers.tenant_id,
                trace_id=entry.headers.trace_id,
                correlation_id=entry.headers.correlation_id,
            )
        )

    async def _handle_event(self, entry: EventLogEntry) -> _Outcome:
        record = await self._repository.get_record(self.name, entry.event_id)

        if record is not None:
            if record.is_completed or record.is_dead_lettered:
                self._event_probe(entry).event_skipped(
                    self.name, entry.event_id, entry.sequence
                )
                return _Outcome.SKIPPED

            if record.attempts >= self._config.max_attempts:
                return await self._dead_letter(
                    entry, record.last_error or MAX_ATTEMPTS_EXCEEDED
                )

        return await self._process(entry)

    async def _process(self, entry: EventLogEntry) -> _Outcome:
        """Run one attempt: mark processing, call the consumer, record the result."""
        probe = self._event_probe(entry)
        record = await self._repository.mark_processing(
            self.name, entry.event_id, entry.sequence
        )

        try:
            result = await self._consumer.process_event(entry)
        except Exception as e:
            result = ProcessResult.retry(str(e) or type(e).__name__)

        if result.success:
            await self._repository.mark_completed(
                self.name, entry.event_id, datetime.now(UTC)
            )
            probe.event_completed(self.name, entry.event_id, entry.sequence)
            return _Outcome.COMPLETED

        error = result.error or "Processing failed"
        if not result.should_retry or record.attempts >= self._config.max_attempts:
            return await self._dead_letter(entry, error)

        await self._repository.mark_retryable(self.name, entry.event_id, error)
        probe.event_failed(self.name, entry.event_id, error, record.attempts)
        return _Outcome.RETRY

    async def _dead_letter(self, entry: EventLogEntry, reason: str) -> _Outcome:
        probe = self._event_probe(entry)
        try:
            await self._repository.dead_letter(self.name, entry, reason)
        except Exception as e:
            # Left as is; the next poll handles it again
            probe.dead_letter_write_failed(self.name, entry.event_id, str(e))
            return _Outcome.RETRY

        probe.event_dead_lettered(self.name, entry.event_id, entry.sequence, reason)
        return _Outcome.DEAD_LETTERED

    async def replay(
        self, from_sequence: int, to_sequence: int | None = None
    ) -> ReplayResult:
        """Reprocess this consumer's events in a sequence range.

        Existing records for the matching events are deleted and each event
        is processed once, in ascending order, with the normal bookkeeping.
        Events that fail are reported in the result. The checkpoint is
        re-derived from storage when the replay finishes; an event left
        pending by a retryable failure holds it back, so later polls
        redeliver that event.

        Args:
            from_sequence: First sequence to replay (inclusive)
            to_sequence: Last sequence to replay (inclusive); None for open
        """
        self._probe.replay_started(self.name, from_sequence, to_sequence)

        succeeded = 0
        failed_event_ids: list[str] = []
        cursor = from_sequence

        while True:
            entries = await self._repository.fetch_range(
                cursor,
                to_sequence,
                self._config.schema_id_prefix,
                self._config.batch_size,
            )
            if not entries:
                break

            await self._repository.delete_records(
                self.name, [entry.event_id for entry in entries]
            )

            for entry in entries:
                outcome = await self._process(entry)
                if outcome is _Outcome.COMPLETED:
                    succeeded += 1
                else:
                    failed_event_ids.append(entry.event_id)

            if len(entries) < self._config.batch_size:
                break
            cursor = entries[-1].sequence + 1

        self._checkpoint = await self._load_checkpoint()

        result = ReplayResult(
            replayed=succeeded + len(failed_event_ids),
            succeeded=succeeded,
            failed=len(failed_event_ids),
            failed_event_ids=tuple(failed_event_ids),
        )
        self._probe.replay_completed(self.name, result)
        return result
