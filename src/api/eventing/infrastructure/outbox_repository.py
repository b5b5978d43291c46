"""Outbox repository implementation.

Persists outbox rows inside the calling service's transaction.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventing.domain.value_objects import OutboxEvent
from eventing.infrastructure.models import OutboxModel


class OutboxRepository:
    """PostgreSQL implementation of IOutboxRepository.

    This repository shares the same database session as the calling service,
    ensuring that the outbox row is written within the same transaction as
    the domain change. This is what makes the outbox atomic with the change.

    The repository only calls session.add() - it never calls
    session.commit(). The calling service owns the transaction boundary.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with the caller's session.

        Args:
            session: The SQLAlchemy async session (shared with calling service)
        """
        self._session = session

    async def append(self, event: OutboxEvent) -> None:
        """Add an outbox row to the current transaction.

        Args:
            event: The row built by build_outbox_event()
        """
        self._session.add(OutboxModel.from_value_object(event))


class StandaloneOutboxRepository:
    """IOutboxRepository for callers without a transaction of their own.

    Each append opens a session, adds the row and commits. Used by the
    internal ingest endpoint, where the outbox row is the only write.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, event: OutboxEvent) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await OutboxRepository(session).append(event)
