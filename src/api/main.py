"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from eventing.dependencies import get_eventing_runtime
from eventing.presentation import routes as eventing_routes
from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.settings import get_settings
from infrastructure.version import __version__


@asynccontextmanager
async def buildflow_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Relay and consumer workers (when workers_enabled)
    - Database engine disposal on shutdown
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)

    runtime = get_eventing_runtime()
    try:
        if settings.workers_enabled:
            await runtime.start()
        yield
    finally:
        await runtime.stop()
        await close_database_connections()
        get_eventing_runtime.cache_clear()


app = FastAPI(
    title="Buildflow Events",
    description="Transactional outbox relay, event log and consumer pipeline",
    version=__version__,
    lifespan=buildflow_lifespan,
)

app.include_router(eventing_routes.router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}
