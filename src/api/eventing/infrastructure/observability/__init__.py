"""Probes for eventing infrastructure."""

from eventing.infrastructure.observability.worker_probe import (
    DefaultWorkerProbe,
    WorkerProbe,
)

__all__ = ["DefaultWorkerProbe", "WorkerProbe"]
