"""Ports (protocols) for the eventing bounded context."""

from eventing.ports.consumers import EventConsumer, Redactor
from eventing.ports.repositories import (
    IConsumerRepository,
    IEventLogReader,
    IOutboxRepository,
    IRelayRepository,
)

__all__ = [
    "EventConsumer",
    "IConsumerRepository",
    "IEventLogReader",
    "IOutboxRepository",
    "IRelayRepository",
    "Redactor",
]
