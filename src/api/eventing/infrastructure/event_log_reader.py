"""PostgreSQL read access to the event log and the DLQ.

Shared by the relay and consumer repositories, and used directly by the
internal HTTP routes.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventing.domain.value_objects import DLQMessage, EventLogEntry
from eventing.infrastructure.models import DLQMessageModel, EventLogModel


class EventLogReader:
    """PostgreSQL implementation of IEventLogReader.

    Each call opens its own short-lived session from the factory; reads are
    never part of a caller's transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_event(self, event_id: str) -> EventLogEntry | None:
        async with self._session_factory() as session:
            stmt = select(EventLogModel).where(EventLogModel.event_id == event_id)
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            return model.to_value_object() if model else None

    async def fetch_after(
        self, after_sequence: int, schema_id_prefix: str, limit: int
    ) -> list[EventLogEntry]:
        stmt = (
            select(EventLogModel)
            .where(EventLogModel.sequence > after_sequence)
            .where(EventLogModel.schema_id.startswith(schema_id_prefix, autoescape=True))
            .order_by(EventLogModel.sequence)
            .limit(limit)
        )
        return await self._fetch_entries(stmt)

    async def fetch_range(
        self,
        from_sequence: int,
        to_sequence: int | None,
        schema_id_prefix: str,
        limit: int,
    ) -> list[EventLogEntry]:
        stmt = (
            select(EventLogModel)
            .where(EventLogModel.sequence >= from_sequence)
            .where(EventLogModel.schema_id.startswith(schema_id_prefix, autoescape=True))
        )
        if to_sequence is not None:
            stmt = stmt.where(EventLogModel.sequence <= to_sequence)

        stmt = stmt.order_by(EventLogModel.sequence).limit(limit)
        return await self._fetch_entries(stmt)

    async def query_events(
        self,
        after_sequence: int | None = None,
        tenant_id: str | None = None,
        schema_id: str | None = None,
        limit: int = 100,
    ) -> list[EventLogEntry]:
        """Query the log with optional exact-match filters."""
        stmt = select(EventLogModel)
        if after_sequence is not None:
            stmt = stmt.where(EventLogModel.sequence > after_sequence)
        if tenant_id is not None:
            stmt = stmt.where(EventLogModel.tenant_id == tenant_id)
        if schema_id is not None:
            stmt = stmt.where(EventLogModel.schema_id == schema_id)

        stmt = stmt.order_by(EventLogModel.sequence).limit(limit)
        return await self._fetch_entries(stmt)

    async def list_dlq_messages(
        self, consumer_name: str | None = None, limit: int = 100
    ) -> list[DLQMessage]:
        stmt = select(DLQMessageModel)
        if consumer_name is not None:
            stmt = stmt.where(DLQMessageModel.consumer_name == consumer_name)

        stmt = stmt.order_by(DLQMessageModel.created_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [model.to_value_object() for model in result.scalars().all()]

    async def _fetch_entries(self, stmt) -> list[EventLogEntry]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [model.to_value_object() for model in result.scalars().all()]
