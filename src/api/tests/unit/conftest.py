"""Unit test fixtures with mocked dependencies."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from eventing.domain.value_objects import (
    EventHeaders,
    EventLogEntry,
    OutboxEvent,
)
from eventing.infrastructure.memory import InMemoryEventStore

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def mock_db_settings():
    """Provide test database settings."""
    from infrastructure.settings import DatabaseSettings

    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="testdb",
        username="testuser",
        password="testpass",
    )


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def make_outbox_event():
    """Factory for pending outbox rows with increasing created_at."""
    counter = {"n": 0}

    def _make(
        event_type: str = "user.created.v1",
        tenant_id: str = "tenant-1",
        payload: dict | None = None,
        **overrides,
    ) -> OutboxEvent:
        counter["n"] += 1
        created_at = BASE_TIME + timedelta(seconds=counter["n"])
        fields = {
            "id": uuid4(),
            "tenant_id": tenant_id,
            "event_type": event_type,
            "payload": payload if payload is not None else {"user_id": f"u-{counter['n']}"},
            "occurred_at": created_at - timedelta(milliseconds=500),
            "created_at": created_at,
        }
        fields.update(overrides)
        return OutboxEvent(**fields)

    return _make


@pytest.fixture
def make_log_entry():
    """Factory for event log entries."""

    def _make(
        sequence: int,
        schema_id: str = "taskflow.task.created",
        event_id: str | None = None,
        tenant_id: str = "tenant-1",
        payload: dict | None = None,
    ) -> EventLogEntry:
        return EventLogEntry(
            sequence=sequence,
            event_id=event_id or f"evt-{sequence}",
            tenant_id=tenant_id,
            schema_id=schema_id,
            schema_version="v1",
            headers=EventHeaders(tenant_id=tenant_id),
            payload_redacted=payload if payload is not None else {"n": sequence},
            payload_hash="0" * 64,
            published_at=BASE_TIME + timedelta(seconds=sequence),
        )

    return _make


@pytest.fixture
def mock_session():
    """Provide a mocked AsyncSession."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_session_factory(mock_session):
    """Provide a session factory whose sessions are ``mock_session``."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    factory.return_value.__aexit__.return_value = False
    return factory
