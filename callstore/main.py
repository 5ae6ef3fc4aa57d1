"""Call Store API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CallStoreError → structured JSON responses
    - Storage settings validated and the database handle opened in the lifespan;
      the handle is disposed on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from callstore import __version__
from callstore.api.dependencies import build_from_settings
from callstore.api.error_handlers import register_error_handlers
from callstore.api.routes import health, internal_calls, internal_usage
from callstore.config import get_settings, validate_storage_settings
from callstore.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    validate_storage_settings(settings)
    app.state.services = build_from_settings(settings)
    logger.info("Call store API started")
    try:
        yield
    finally:
        logger.info("Call store API shutting down")
        await app.state.services.db.dispose()
        app.state.services = None


app = FastAPI(
    title="Call Store API", version=__version__, lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(internal_calls.router)
app.include_router(internal_usage.router)

register_error_handlers(app)
