"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request- or event-scoped metadata that should be included with
    all instrumentation events, so that log lines from the relay, consumers
    and HTTP handlers can be correlated by tenant and trace.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        tenant_id: Multi-tenant identifier (if applicable).
        trace_id: Trace id carried in event headers (if applicable).
        correlation_id: Correlation id carried in event headers (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(tenant_id="t1", trace_id="abc")
        probe = DefaultConsumerProbe().with_context(context)
    """

    request_id: str | None = None
    tenant_id: str | None = None
    trace_id: str | None = None
    correlation_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.tenant_id is not None:
            result["tenant_id"] = self.tenant_id
        if self.trace_id is not None:
            result["trace_id"] = self.trace_id
        if self.correlation_id is not None:
            result["correlation_id"] = self.correlation_id
        result.update(self.extra)
        return result

    def with_tenant(self, tenant_id: str) -> ObservationContext:
        """Create a new context with the tenant set."""
        return replace(self, tenant_id=tenant_id)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
