"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from taskreport.api.errors import taskreport_error_handler
from taskreport.api.routes import health, schema, uploads
from taskreport.core.config import AppSettings
from taskreport.core.exceptions import TaskReportError
from taskreport.core.log import configure_logging
from taskreport.persistence import create_persistence


def create_app(settings: AppSettings | None = None, persistence: tuple | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; read from the environment if omitted.
        persistence: ``(schema_provider, record_store, cache, invalidator)``;
            built from settings if omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        app_settings = settings or AppSettings()
        configure_logging(app_settings.log_level)
        schema_provider, record_store, cache, invalidator = persistence or create_persistence(app_settings)
        app.state.settings = app_settings
        app.state.schema_provider = schema_provider
        app.state.record_store = record_store
        app.state.cache = cache
        app.state.invalidator = invalidator
        yield

    app = FastAPI(
        title="TaskReport Upload Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(TaskReportError, taskreport_error_handler)
    app.include_router(health.router)
    app.include_router(schema.router)
    app.include_router(uploads.router, prefix="/uploads")
    return app
