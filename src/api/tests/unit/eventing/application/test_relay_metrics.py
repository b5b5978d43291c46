"""Unit tests for RelayMetricsReader."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from eventing.application.metrics import RelayMetricsReader
from eventing.domain.value_objects import RELAY_CONSUMER_NAME, OutboxStatus

OCCURRED = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def published(make_outbox_event, lag_ms: int, offset_s: int = 0):
    occurred = OCCURRED + timedelta(seconds=offset_s)
    return make_outbox_event(
        status=OutboxStatus.PUBLISHED,
        occurred_at=occurred,
        published_at=occurred + timedelta(milliseconds=lag_ms),
    )


class TestRelayMetricsReader:
    @pytest.mark.asyncio
    async def test_empty_store(self, memory_store):
        metrics = await RelayMetricsReader(memory_store.relay_repository).get_relay_metrics()

        assert metrics.pending_count == 0
        assert metrics.published_count == 0
        assert metrics.failed_count == 0
        assert metrics.dlq_count == 0
        assert metrics.avg_lag_ms == 0

    @pytest.mark.asyncio
    async def test_counts_rows_by_status(self, memory_store, make_outbox_event):
        memory_store.add_outbox_event(make_outbox_event())
        memory_store.add_outbox_event(make_outbox_event())
        memory_store.add_outbox_event(published(make_outbox_event, 100))
        memory_store.add_outbox_event(make_outbox_event(status=OutboxStatus.FAILED))

        metrics = await RelayMetricsReader(memory_store.relay_repository).get_relay_metrics()

        assert metrics.pending_count == 2
        assert metrics.published_count == 1
        assert metrics.failed_count == 1

    @pytest.mark.asyncio
    async def test_average_lag_is_rounded_milliseconds(self, memory_store, make_outbox_event):
        memory_store.add_outbox_event(published(make_outbox_event, 100))
        memory_store.add_outbox_event(published(make_outbox_event, 200))

        metrics = await RelayMetricsReader(memory_store.relay_repository).get_relay_metrics()

        assert metrics.avg_lag_ms == 150

    @pytest.mark.asyncio
    async def test_lag_uses_most_recent_sample(self, memory_store, make_outbox_event):
        memory_store.add_outbox_event(published(make_outbox_event, 5000, offset_s=0))
        memory_store.add_outbox_event(published(make_outbox_event, 10, offset_s=60))

        reader = RelayMetricsReader(memory_store.relay_repository, sample_size=1)
        metrics = await reader.get_relay_metrics()

        assert metrics.avg_lag_ms == 10

    @pytest.mark.asyncio
    async def test_dlq_count_is_relay_only(self):
        repository = AsyncMock()
        repository.count_outbox.return_value = 0
        repository.count_dlq.return_value = 4
        repository.recent_publish_times.return_value = []

        metrics = await RelayMetricsReader(repository, sample_size=50).get_relay_metrics()

        assert metrics.dlq_count == 4
        repository.count_dlq.assert_awaited_once_with(RELAY_CONSUMER_NAME)
        repository.recent_publish_times.assert_awaited_once_with(50)
