"""Shared database engine and session factory.

The engine is created on first use and disposed on application shutdown.
Repositories receive the session factory; FastAPI routes that write
outbox rows receive a session through ``get_session``.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_engine, create_session_factory
from infrastructure.database.exceptions import DatabaseNotConfiguredError
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings, get_settings

# Module-level probe for observability
_probe = DefaultConnectionProbe()

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_engine() -> AsyncEngine:
    """Get the database engine (singleton).

    Creates the engine and its session factory on first call. Uses
    double-check locking for thread-safe initialization.
    """
    global _engine, _sessionmaker
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                settings = get_database_settings()
                _engine = create_engine(settings)
                _sessionmaker = create_session_factory(_engine)
                _probe.engine_created("default", settings.host, settings.database)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the shared engine."""
    get_engine()
    assert _sessionmaker is not None
    return _sessionmaker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a session (FastAPI dependency).

    The session does NOT auto-commit. Callers that write outbox rows
    commit the domain change and the row together:

        @router.post("/projects")
        async def create_project(session: AsyncSession = Depends(get_session)):
            async with session.begin():
                session.add(project)
                await OutboxRepository(session).append(event)

    Yields:
        AsyncSession for database operations

    Raises:
        DatabaseNotConfiguredError: If the in-memory event store is configured,
            since outbox rows written through PostgreSQL would never be relayed
    """
    if get_settings().event_store == "memory":
        raise DatabaseNotConfiguredError("Database session")

    async with get_session_factory()() as session:
        yield session


async def close_database_connections() -> None:
    """Dispose the engine's connections.

    Should be called on application shutdown. Also resets the session
    factory to allow reinitialization.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _probe.engine_disposed("default")
        _engine = None
        _sessionmaker = None
