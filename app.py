"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from spacequote.controllers.analytics_controller import router as analytics_router
from spacequote.controllers.quote_controller import router as quote_router
from spacequote.repository.data_repository import DataRepository
from spacequote.services.analytics_service import AnalyticsService
from spacequote.services.history_service import HistoryService
from spacequote.services.quote_service import QuoteWorkflowService
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service is constructed here and exposed through app.state, so each
    dependency is traceable from this function.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_file)

    repository = DataRepository(settings)
    history_service = HistoryService(repository=repository, settings=settings)
    quote_service = QuoteWorkflowService(
        repository=repository,
        settings=settings,
        history_service=history_service,
    )
    analytics_service = AnalyticsService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(quote_router)
    app.include_router(analytics_router)

    app.state.repository = repository
    app.state.history_service = history_service
    app.state.quote_service = quote_service
    app.state.analytics_service = analytics_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent startup: schema first, then the default catalog when empty."""
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    logger.info("Startup: seeding default catalog")
    repository.seed_default_catalog()

    logger.info(
        "Startup complete | database=%s | rooms=%s | history_records=%s",
        repository.database_path,
        len(repository.list_rooms()),
        repository.count_history(),
    )


# Module-level app object for uvicorn
app = create_app()
