"""Unit tests for database dependency injection.

Tests the shared engine, the session factory and the FastAPI session
dependency.
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database import dependencies
from infrastructure.database.dependencies import (
    close_database_connections,
    get_engine,
    get_session,
    get_session_factory,
)
from infrastructure.database.exceptions import DatabaseNotConfiguredError
from infrastructure.settings import Settings


@pytest_asyncio.fixture(autouse=True)
async def reset_engine():
    """Dispose the shared engine after each test."""
    yield
    await close_database_connections()


@pytest.mark.asyncio
async def test_get_engine():
    """Test that get_engine returns an AsyncEngine."""
    engine = get_engine()

    assert isinstance(engine, AsyncEngine)
    assert engine.url.drivername == "postgresql+asyncpg"


@pytest.mark.asyncio
async def test_engine_is_singleton():
    """Test that the engine is cached and reused."""
    assert get_engine() is get_engine()


@pytest.mark.asyncio
async def test_session_factory_is_bound_to_engine():
    """Test that the factory shares the singleton engine."""
    factory = get_session_factory()

    assert factory.kw["bind"] is get_engine()
    assert get_session_factory() is factory


@pytest.mark.asyncio
async def test_close_resets_engine():
    """Test that closing disposes the engine and allows reinitialization."""
    first = get_engine()

    await close_database_connections()

    assert dependencies._engine is None
    assert get_engine() is not first


@pytest.mark.asyncio
async def test_close_without_engine_is_a_no_op():
    """Test that closing twice is safe."""
    await close_database_connections()
    await close_database_connections()

    assert dependencies._engine is None


@pytest.mark.asyncio
async def test_get_session_rejects_memory_store():
    """Test that no PostgreSQL session is handed out with the memory store."""
    with patch(
        "infrastructure.database.dependencies.get_settings",
        return_value=Settings(event_store="memory"),
    ):
        with pytest.raises(DatabaseNotConfiguredError) as exc_info:
            await anext(get_session())

    assert exc_info.value.component == "Database session"
