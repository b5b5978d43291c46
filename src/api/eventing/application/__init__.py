"""Application layer for the eventing bounded context.

Orchestrates the relay, consumer runners and metrics over the repository
ports. Nothing here knows about SQLAlchemy or HTTP.
"""

from eventing.application.consumer import ConsumerConfig, ConsumerRunner
from eventing.application.envelope import parse_payload
from eventing.application.metrics import RelayMetricsReader
from eventing.application.outbox_writer import build_outbox_event, generate_dedupe_key
from eventing.application.relay import EventRelay

__all__ = [
    "ConsumerConfig",
    "ConsumerRunner",
    "EventRelay",
    "RelayMetricsReader",
    "build_outbox_event",
    "generate_dedupe_key",
    "parse_payload",
]
