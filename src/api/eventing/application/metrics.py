"""Aggregate relay metrics."""

from __future__ import annotations

from eventing.domain.value_objects import (
    RELAY_CONSUMER_NAME,
    OutboxStatus,
    RelayMetrics,
)
from eventing.ports.repositories import IRelayRepository

DEFAULT_LAG_SAMPLE_SIZE = 100


class RelayMetricsReader:
    """Reads outbox counts, relay DLQ size and average publish lag."""

    def __init__(
        self,
        repository: IRelayRepository,
        sample_size: int = DEFAULT_LAG_SAMPLE_SIZE,
    ) -> None:
        self._repository = repository
        self._sample_size = sample_size

    async def get_relay_metrics(self) -> RelayMetrics:
        """Compute current relay metrics.

        ``avg_lag_ms`` is the mean of (published_at - occurred_at) over the
        most recently published rows, rounded to whole milliseconds, or 0
        when nothing has been published yet.
        """
        pending = await self._repository.count_outbox(OutboxStatus.PENDING)
        published = await self._repository.count_outbox(OutboxStatus.PUBLISHED)
        failed = await self._repository.count_outbox(OutboxStatus.FAILED)
        dlq = await self._repository.count_dlq(RELAY_CONSUMER_NAME)

        samples = await self._repository.recent_publish_times(self._sample_size)
        if samples:
            total_ms = sum(
                (published_at - occurred_at).total_seconds() * 1000
                for occurred_at, published_at in samples
            )
            avg_lag_ms = round(total_ms / len(samples))
        else:
            avg_lag_ms = 0

        return RelayMetrics(
            pending_count=pending,
            published_count=published,
            failed_count=failed,
            dlq_count=dlq,
            avg_lag_ms=avg_lag_ms,
        )
