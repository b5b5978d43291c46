"""Probes for shared infrastructure such as database engines.

Eventing probes live with the relay, the consumers and the workers; the
observation context they bind lives in ``shared_kernel``.
"""

from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

__all__ = [
    "ConnectionProbe",
    "DefaultConnectionProbe",
]
