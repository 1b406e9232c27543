"""HTTP controller layer for quote history, exports and dashboard analytics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from spacequote.controllers.dependencies import get_analytics_service, get_history_service
from spacequote.domain.models import HistoricalRecord
from spacequote.services.analytics_service import AnalyticsService
from spacequote.services.history_service import HistoryRecordNotFoundError, HistoryService
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["analytics"])


class HistoryRecordResponse(BaseModel):
    record_id: int = Field(gt=0)
    created_at: str
    room_id: int
    room_name: str
    unit: str
    duration: int
    duration_unit: str
    total_hours: float
    subtotal: float
    margin_amount: float
    discount_amount: float
    discount_percent: float
    final_price: float
    base_cost: float
    net_margin_percent: float
    risk_level: str
    client_name: str
    client_contact: str
    converted: bool
    event_date: str | None = None
    lead_time_days: int | None = None
    predominant_shift: str | None = None
    price_per_hour: float

    @classmethod
    def from_record(cls, record: HistoricalRecord) -> HistoryRecordResponse:
        return cls(**record.to_dict())


class ConversionRequest(BaseModel):
    converted: bool = True


class KpiResponse(BaseModel):
    total_revenue: float
    confirmed_revenue: float
    average_net_margin: float
    average_ticket: float


class UnitAnalyticsResponse(BaseModel):
    revenue: float
    variable_cost: float = Field(ge=0.0)
    fixed_cost: float = Field(ge=0.0)
    contribution_margin: float
    count: int = Field(ge=0)


class MonthlyAnalyticsResponse(BaseModel):
    month: str
    revenue: float
    costs: float
    net_margin: float
    net_margin_percent: float
    count: int = Field(ge=0)


class AnalyticsResponse(BaseModel):
    kpis: KpiResponse
    by_unit: dict[str, UnitAnalyticsResponse]
    monthly: list[MonthlyAnalyticsResponse]


class RenewalOpportunityResponse(BaseModel):
    record_id: int
    client_name: str
    client_contact: str
    space: str
    quoted_at: str
    months_ago: int
    previous_value: float
    converted: bool


@router.get("/history", response_model=list[HistoryRecordResponse])
async def list_history(
    limit: int = Query(default=50, ge=1, le=500),
    service: HistoryService = Depends(get_history_service),
) -> list[HistoryRecordResponse]:
    return [HistoryRecordResponse.from_record(record) for record in service.list_recent(limit)]


@router.get("/history/export")
async def export_history(service: HistoryService = Depends(get_history_service)) -> Response:
    return Response(
        content=service.export_history_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="quote_history.csv"'},
    )


@router.get("/history/export/ml")
async def export_ml_dataset(service: HistoryService = Depends(get_history_service)) -> Response:
    return Response(
        content=service.export_ml_dataset(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="conversion_dataset.csv"'},
    )


@router.post(
    "/history/{record_id}/conversion",
    response_model=HistoryRecordResponse,
    status_code=status.HTTP_200_OK,
)
async def set_conversion(
    record_id: int,
    payload: ConversionRequest,
    service: HistoryService = Depends(get_history_service),
) -> HistoryRecordResponse:
    """Mark whether a quoted client actually closed the deal."""
    try:
        record = service.set_conversion(record_id, payload.converted)
        return HistoryRecordResponse.from_record(record)
    except HistoryRecordNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected conversion update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update conversion",
        ) from exc


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(service: AnalyticsService = Depends(get_analytics_service)) -> AnalyticsResponse:
    try:
        return AnalyticsResponse(**service.summarize().to_dict())
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected analytics failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to aggregate analytics",
        ) from exc


@router.get("/renewals", response_model=list[RenewalOpportunityResponse])
async def renewals(
    service: HistoryService = Depends(get_history_service),
) -> list[RenewalOpportunityResponse]:
    return [
        RenewalOpportunityResponse(
            record_id=item.record_id,
            client_name=item.client_name,
            client_contact=item.client_contact,
            space=item.space,
            quoted_at=item.quoted_at,
            months_ago=item.months_ago,
            previous_value=item.previous_value,
            converted=item.converted,
        )
        for item in service.renewal_opportunities()
    ]
