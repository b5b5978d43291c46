"""Domain probes for the eventing application layer."""

from eventing.application.observability.consumer_probe import (
    ConsumerProbe,
    DefaultConsumerProbe,
)
from eventing.application.observability.relay_probe import (
    DefaultEventRelayProbe,
    EventRelayProbe,
)

__all__ = [
    "ConsumerProbe",
    "DefaultConsumerProbe",
    "DefaultEventRelayProbe",
    "EventRelayProbe",
]
