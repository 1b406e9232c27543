"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from spacequote.repository.data_repository import DataRepository
from spacequote.services.analytics_service import AnalyticsService
from spacequote.services.history_service import HistoryService
from spacequote.services.quote_service import QuoteWorkflowService


def _require_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_repository(request: Request) -> DataRepository:
    return _require_state(request, "repository", "Repository")


def get_quote_service(request: Request) -> QuoteWorkflowService:
    return _require_state(request, "quote_service", "Quote service")


def get_history_service(request: Request) -> HistoryService:
    return _require_state(request, "history_service", "History service")


def get_analytics_service(request: Request) -> AnalyticsService:
    return _require_state(request, "analytics_service", "Analytics service")
