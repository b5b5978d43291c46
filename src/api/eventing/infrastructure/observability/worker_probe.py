"""Observability probe for the background workers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from eventing.domain.value_objects import RelayMetrics


class WorkerProbe(Protocol):
    """Protocol for relay and consumer worker observability."""

    def worker_started(self, worker: str, poll_interval_seconds: float) -> None:
        """Called when a worker starts."""
        ...

    def worker_already_running(self, worker: str) -> None:
        """Called when start() is invoked on a running worker."""
        ...

    def worker_stopped(self, worker: str) -> None:
        """Called when a worker stops."""
        ...

    def poll_loop_error(self, worker: str, error: str) -> None:
        """Called when an error escapes a poll cycle."""
        ...

    def relay_metrics(self, metrics: RelayMetrics) -> None:
        """Called periodically with aggregate relay metrics."""
        ...

    def metrics_error(self, error: str) -> None:
        """Called when reading relay metrics fails."""
        ...

    def consumer_registered(self, consumer_name: str, schema_id_prefix: str) -> None:
        """Called when a consumer runner is registered."""
        ...

    def consumer_start_failed(self, consumer_name: str, error: str) -> None:
        """Called when a consumer runner fails to start."""
        ...


class DefaultWorkerProbe:
    """Default implementation using structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or structlog.get_logger().bind(component="event_worker")

    def worker_started(self, worker: str, poll_interval_seconds: float) -> None:
        self._logger.info(
            "event_worker_started",
            worker=worker,
            poll_interval_seconds=poll_interval_seconds,
        )

    def worker_already_running(self, worker: str) -> None:
        self._logger.warning("event_worker_already_running", worker=worker)

    def worker_stopped(self, worker: str) -> None:
        self._logger.info("event_worker_stopped", worker=worker)

    def poll_loop_error(self, worker: str, error: str) -> None:
        self._logger.error("event_worker_poll_loop_error", worker=worker, error=error)

    def relay_metrics(self, metrics: RelayMetrics) -> None:
        self._logger.info(
            "event_relay_metrics",
            pending=metrics.pending_count,
            published=metrics.published_count,
            failed=metrics.failed_count,
            dlq=metrics.dlq_count,
            avg_lag_ms=metrics.avg_lag_ms,
        )

    def metrics_error(self, error: str) -> None:
        self._logger.error("event_relay_metrics_error", error=error)

    def consumer_registered(self, consumer_name: str, schema_id_prefix: str) -> None:
        self._logger.info(
            "event_consumer_registered",
            consumer=consumer_name,
            schema_id_prefix=schema_id_prefix,
        )

    def consumer_start_failed(self, consumer_name: str, error: str) -> None:
        self._logger.error(
            "event_consumer_start_failed",
            consumer=consumer_name,
            error=error,
        )
