"""HTTP controller layer for quote calculation and catalog lookups."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from spacequote.controllers.dependencies import get_quote_service, get_repository
from spacequote.domain.models import CalculationParameters, ScheduleWindow
from spacequote.repository.data_repository import DataRepository
from spacequote.services.history_service import QuoteError
from spacequote.services.quote_service import QuoteRequest, QuoteWorkflowService
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["quotes"])

_TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class ScheduleWindowPayload(BaseModel):
    start: str = Field(pattern=_TIME_PATTERN)
    end: str = Field(pattern=_TIME_PATTERN)


class CalculateRequest(BaseModel):
    """Input DTO validated before entering service layer.

    Every pricing field is optional; omitted values fall back to the engine
    defaults and are reported back in ``defaulted_fields``.
    """

    room_id: int | None = Field(default=None, gt=0)
    duration: int | None = Field(default=None, gt=0, le=3650)
    duration_unit: str | None = None
    selected_weekdays: list[int] | None = None
    hours_per_day: float | None = Field(default=None, ge=0.0, le=24.0)
    margin: float | None = Field(default=None, ge=0.0, le=1.0)
    discount: float | None = Field(default=None, ge=0.0, le=1.0)
    extra_ids: list[int] = Field(default_factory=list)
    shift: str | None = None
    schedules: list[ScheduleWindowPayload] = Field(default_factory=list)
    client_name: str | None = Field(default=None, max_length=200)
    client_contact: str | None = Field(default=None, max_length=200)
    event_date: date | None = None
    save_history: bool = True

    @field_validator("selected_weekdays")
    @classmethod
    def validate_weekdays(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        for weekday in value:
            if not 0 <= weekday <= 6:
                raise ValueError("selected_weekdays entries must be between 0 (Sunday) and 6 (Saturday)")
        return value

    @field_validator("duration_unit")
    @classmethod
    def validate_duration_unit(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if value.strip().lower() not in {"day", "days", "dias", "month", "months", "meses"}:
            raise ValueError("duration_unit must be 'days' or 'months'")
        return value

    def to_quote_request(self) -> QuoteRequest:
        return QuoteRequest(
            room_id=self.room_id,
            parameters=CalculationParameters(
                duration=self.duration,
                duration_unit=self.duration_unit,
                selected_weekdays=(
                    tuple(self.selected_weekdays) if self.selected_weekdays is not None else None
                ),
                hours_per_day=self.hours_per_day,
                margin=self.margin,
                discount=self.discount,
                extra_ids=tuple(self.extra_ids),
                shift=self.shift,
                schedules=tuple(
                    ScheduleWindow(start=item.start, end=item.end) for item in self.schedules
                ),
            ),
            client_name=self.client_name,
            client_contact=self.client_contact,
            event_date=self.event_date.isoformat() if self.event_date else None,
            save_history=self.save_history,
        )


class RiskResponse(BaseModel):
    level: str
    variable_cost_ratio: float = Field(ge=0.0)
    forced: bool


class ViabilityResponse(BaseModel):
    net_margin_percent: float
    fixed_cost: float = Field(ge=0.0)
    variable_cost: float = Field(ge=0.0)
    contribution_margin: float
    contribution_margin_percent: float
    break_even_price: float = Field(ge=0.0)
    below_break_even: bool
    weekend_staffing_shortfall: bool


class CalculateResponse(BaseModel):
    result: dict[str, Any]
    risk: RiskResponse
    viability: ViabilityResponse
    history_id: int | None = None


class RoomResponse(BaseModel):
    room_id: int
    name: str
    unit: str
    capacity: int = Field(ge=0)
    area: float = Field(ge=0.0)
    base_cost: float = Field(ge=0.0)
    morning_cost: float | None = None
    afternoon_cost: float | None = None
    evening_cost: float | None = None


class ExtraResponse(BaseModel):
    extra_id: int
    name: str
    cost_per_hour: float


class EmployeeResponse(BaseModel):
    employee_id: int
    name: str
    rate_normal: float
    rate_ot50: float
    rate_ot100: float
    transit_rate: float
    ride_rate: float
    meal_rate: float
    active: bool


@router.post(
    "/calculate",
    response_model=CalculateResponse,
    status_code=status.HTTP_200_OK,
)
async def calculate(
    payload: CalculateRequest,
    service: QuoteWorkflowService = Depends(get_quote_service),
) -> CalculateResponse:
    """Price a quote, rate its risk and append it to the history."""
    try:
        outcome = service.quote(payload.to_quote_request())
        return CalculateResponse(**outcome.to_dict())
    except QuoteError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected quote calculation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate quote",
        ) from exc


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(repository: DataRepository = Depends(get_repository)) -> list[RoomResponse]:
    return [
        RoomResponse(
            room_id=room.room_id,
            name=room.name,
            unit=room.unit,
            capacity=room.capacity,
            area=room.area,
            base_cost=room.base_cost,
            morning_cost=room.morning_cost,
            afternoon_cost=room.afternoon_cost,
            evening_cost=room.evening_cost,
        )
        for room in repository.list_rooms()
    ]


@router.get("/extras", response_model=list[ExtraResponse])
async def list_extras(repository: DataRepository = Depends(get_repository)) -> list[ExtraResponse]:
    return [
        ExtraResponse(extra_id=extra.extra_id, name=extra.name, cost_per_hour=extra.cost_per_hour)
        for extra in repository.extras()
    ]


@router.get("/employees", response_model=list[EmployeeResponse])
async def list_employees(
    repository: DataRepository = Depends(get_repository),
) -> list[EmployeeResponse]:
    return [
        EmployeeResponse(
            employee_id=employee.employee_id,
            name=employee.name,
            rate_normal=employee.rate_normal,
            rate_ot50=employee.rate_ot50,
            rate_ot100=employee.rate_ot100,
            transit_rate=employee.transit_rate,
            ride_rate=employee.ride_rate,
            meal_rate=employee.meal_rate,
            active=employee.active,
        )
        for employee in repository.list_employees()
    ]


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
