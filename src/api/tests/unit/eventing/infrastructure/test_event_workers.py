"""Unit tests for RelayWorker and ConsumerWorker."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eventing.application.consumer import ConsumerConfig, ConsumerRunner
from eventing.domain.value_objects import RelayMetrics, RelayResult
from eventing.infrastructure.worker import (
    RELAY_WORKER_NAME,
    ConsumerWorker,
    RelayWorker,
)


@pytest.fixture
def mock_relay():
    relay = MagicMock()
    relay.relay = AsyncMock(return_value=RelayResult())
    return relay


@pytest.fixture
def mock_metrics_reader():
    reader = MagicMock()
    reader.get_relay_metrics = AsyncMock(
        return_value=RelayMetrics(
            pending_count=1,
            published_count=2,
            failed_count=0,
            dlq_count=0,
            avg_lag_ms=12,
        )
    )
    return reader


class TestRelayWorker:
    """Tests for the relay worker lifecycle."""

    @pytest.mark.asyncio
    async def test_start_runs_first_batch_immediately(self, mock_relay, mock_metrics_reader):
        worker = RelayWorker(mock_relay, mock_metrics_reader, probe=MagicMock())

        await worker.start()
        await asyncio.sleep(0.01)
        await worker.stop()

        mock_relay.relay.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_polls_repeatedly(self, mock_relay, mock_metrics_reader):
        worker = RelayWorker(
            mock_relay, mock_metrics_reader, probe=MagicMock(), poll_interval_seconds=0.01
        )

        await worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        assert mock_relay.relay.await_count >= 2

    @pytest.mark.asyncio
    async def test_lifecycle_probes(self, mock_relay, mock_metrics_reader):
        probe = MagicMock()
        worker = RelayWorker(mock_relay, mock_metrics_reader, probe=probe)

        await worker.start()
        assert worker.is_running
        await worker.start()
        await worker.stop()

        assert not worker.is_running
        probe.worker_started.assert_called_once_with(RELAY_WORKER_NAME, 2.0)
        probe.worker_already_running.assert_called_once_with(RELAY_WORKER_NAME)
        probe.worker_stopped.assert_called_once_with(RELAY_WORKER_NAME)

    @pytest.mark.asyncio
    async def test_stop_without_start_is_a_no_op(self, mock_relay, mock_metrics_reader):
        probe = MagicMock()
        worker = RelayWorker(mock_relay, mock_metrics_reader, probe=probe)

        await worker.stop()

        probe.worker_stopped.assert_not_called()

    @pytest.mark.asyncio
    async def test_relay_errors_are_reported_and_loop_continues(
        self, mock_relay, mock_metrics_reader
    ):
        mock_relay.relay.side_effect = RuntimeError("db down")
        probe = MagicMock()
        worker = RelayWorker(
            mock_relay, mock_metrics_reader, probe=probe, poll_interval_seconds=0.01
        )

        await worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        probe.poll_loop_error.assert_called_with(RELAY_WORKER_NAME, "db down")
        assert mock_relay.relay.await_count >= 2

    @pytest.mark.asyncio
    async def test_logs_metrics_on_interval(self, mock_relay, mock_metrics_reader):
        probe = MagicMock()
        worker = RelayWorker(
            mock_relay,
            mock_metrics_reader,
            probe=probe,
            metrics_interval_seconds=0.01,
        )

        await worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        probe.relay_metrics.assert_called_with(
            mock_metrics_reader.get_relay_metrics.return_value
        )

    @pytest.mark.asyncio
    async def test_metrics_errors_are_reported(self, mock_relay, mock_metrics_reader):
        mock_metrics_reader.get_relay_metrics.side_effect = RuntimeError("no metrics")
        probe = MagicMock()
        worker = RelayWorker(
            mock_relay,
            mock_metrics_reader,
            probe=probe,
            metrics_interval_seconds=0.01,
        )

        await worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        probe.metrics_error.assert_called_with("no metrics")
        probe.relay_metrics.assert_not_called()


class TestConsumerWorker:
    """Tests for the consumer registry."""

    def _runner(self, memory_store, name: str = "projector") -> ConsumerRunner:
        consumer = MagicMock()
        consumer.process_event = AsyncMock()
        return ConsumerRunner(
            consumer,
            ConsumerConfig(name=name, schema_id_prefix="taskflow.", poll_interval_seconds=0.01),
            memory_store.consumer_repository,
            probe=MagicMock(),
        )

    def test_register_and_get(self, memory_store):
        probe = MagicMock()
        worker = ConsumerWorker(probe=probe)
        runner = self._runner(memory_store)

        worker.register(runner)

        assert worker.get("projector") is runner
        assert worker.get("missing") is None
        assert worker.runners == [runner]
        probe.consumer_registered.assert_called_once_with("projector", "taskflow.")

    def test_duplicate_name_is_rejected(self, memory_store):
        worker = ConsumerWorker(probe=MagicMock())
        worker.register(self._runner(memory_store))

        with pytest.raises(ValueError, match="already registered"):
            worker.register(self._runner(memory_store))

    @pytest.mark.asyncio
    async def test_start_and_stop_all_runners(self, memory_store):
        worker = ConsumerWorker(probe=MagicMock())
        first = self._runner(memory_store, "a")
        second = self._runner(memory_store, "b")
        worker.register(first)
        worker.register(second)

        await worker.start()
        assert first.is_running and second.is_running
        await worker.stop()

        assert not first.is_running
        assert not second.is_running

    @pytest.mark.asyncio
    async def test_failed_start_stops_started_runners(self, memory_store):
        probe = MagicMock()
        worker = ConsumerWorker(probe=probe)
        first = self._runner(memory_store, "a")
        second = self._runner(memory_store, "b")
        worker.register(first)
        worker.register(second)

        with patch.object(second, "start", AsyncMock(side_effect=RuntimeError("db down"))):
            with pytest.raises(RuntimeError, match="db down"):
                await worker.start()

        assert not first.is_running
        probe.consumer_start_failed.assert_called_once_with("b", "db down")
