"""HTTP routes for the internal events API.

Service-to-service endpoints for inspecting the event log, the DLQ and the
relay, for replaying consumers, and for ingesting events into the outbox.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from eventing.application.activity import EventActivityConsumer
from eventing.application.metrics import RelayMetricsReader
from eventing.application.outbox_writer import build_outbox_event
from eventing.dependencies import (
    get_consumer_worker,
    get_event_activity,
    get_event_log_reader,
    get_outbox_repository,
    get_relay_metrics_reader,
)
from eventing.domain.exceptions import InvalidEventTypeError
from eventing.domain.identifiers import parse_event_type
from eventing.infrastructure.worker import ConsumerWorker
from eventing.ports.repositories import IEventLogReader, IOutboxRepository
from eventing.presentation.models import (
    ActivityListResponse,
    DLQListResponse,
    DLQMessageResponse,
    EventLogEntryResponse,
    EventLogPageResponse,
    IngestEventRequest,
    IngestEventResponse,
    RelayMetricsResponse,
    ReplayRequest,
    ReplayResponse,
    SchemaActivityResponse,
)

router = APIRouter(prefix="/internal", tags=["internal-events"])


@router.get("/relay/metrics")
async def get_relay_metrics(
    reader: RelayMetricsReader = Depends(get_relay_metrics_reader),
) -> RelayMetricsResponse:
    """Get outbox counts, relay DLQ size and average publish lag."""
    metrics = await reader.get_relay_metrics()
    return RelayMetricsResponse.from_domain(metrics)


@router.get("/event-log")
async def query_event_log(
    after_sequence: int | None = Query(default=None, ge=0),
    tenant_id: str | None = Query(default=None),
    schema_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    reader: IEventLogReader = Depends(get_event_log_reader),
) -> EventLogPageResponse:
    """Query the event log in sequence order.

    Filters are exact matches. When a full page is returned, pass
    ``next_sequence`` as ``after_sequence`` to fetch the next one.
    """
    events = await reader.query_events(
        after_sequence=after_sequence,
        tenant_id=tenant_id,
        schema_id=schema_id,
        limit=limit,
    )

    next_sequence = events[-1].sequence if events and len(events) == limit else None
    return EventLogPageResponse(
        events=[EventLogEntryResponse.from_domain(entry) for entry in events],
        next_sequence=next_sequence,
    )


@router.get("/dlq")
async def list_dlq_messages(
    consumer_name: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    reader: IEventLogReader = Depends(get_event_log_reader),
) -> DLQListResponse:
    """List DLQ messages, newest first."""
    messages = await reader.list_dlq_messages(consumer_name=consumer_name, limit=limit)
    return DLQListResponse(
        messages=[DLQMessageResponse.from_domain(message) for message in messages],
        count=len(messages),
    )


@router.post("/consumers/{consumer_name}/replay")
async def replay_consumer(
    consumer_name: str,
    request: ReplayRequest,
    worker: ConsumerWorker = Depends(get_consumer_worker),
) -> ReplayResponse:
    """Reprocess a consumer's events in a sequence range.

    Raises:
        HTTPException: 404 if no consumer with this name is registered
    """
    runner = worker.get(consumer_name)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Consumer not found: {consumer_name}",
        )

    result = await runner.replay(request.from_sequence, request.to_sequence)
    return ReplayResponse.from_domain(consumer_name, result)


@router.get("/activity")
async def get_event_activity_snapshot(
    tenant_id: str | None = Query(default=None),
    activity: EventActivityConsumer | None = Depends(get_event_activity),
) -> ActivityListResponse:
    """Delivered-event counts per tenant and schema since process start.

    Raises:
        HTTPException: 404 if the activity consumer is disabled
    """
    if activity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event activity consumer is disabled",
        )

    snapshot = activity.snapshot(tenant_id)
    return ActivityListResponse(
        activity=[SchemaActivityResponse.from_domain(item) for item in snapshot],
        count=len(snapshot),
    )


@router.post("/events/ingest", status_code=status.HTTP_202_ACCEPTED)
async def ingest_event(
    request: IngestEventRequest,
    outbox: IOutboxRepository = Depends(get_outbox_repository),
) -> IngestEventResponse:
    """Accept an event from another service into the outbox.

    The relay publishes it to the event log on its next batch.

    Raises:
        HTTPException: 422 if schema_id and version do not form a valid
            event type
    """
    try:
        parse_event_type(request.event_type)
    except InvalidEventTypeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        ) from e

    event = build_outbox_event(
        request.tenant_id,
        request.event_type,
        request.payload,
        aggregate_id=request.aggregate_id,
        dedupe_key=request.dedupe_key,
        actor_user_id=request.actor_user_id,
        trace_id=request.trace_id,
        correlation_id=request.correlation_id,
    )
    await outbox.append(event)

    return IngestEventResponse(outbox_id=event.id)
