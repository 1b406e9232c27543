"""End-to-end quote workflow used by the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from spacequote.domain.models import (
    CalculationParameters,
    CalculationResult,
    HistoricalRecord,
    RiskClassification,
    ViabilityAnalysis,
)
from spacequote.repository.data_repository import DataRepository
from spacequote.services.budget_service import BudgetCalculationService
from spacequote.services.history_service import HistoryService
from spacequote.services.risk_service import analyze_viability, classify_risk
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class QuoteRequest:
    """Quote inputs as received from a caller, with the room referenced by id."""

    room_id: Optional[int] = None
    parameters: CalculationParameters = field(default_factory=CalculationParameters)
    client_name: Optional[str] = None
    client_contact: Optional[str] = None
    event_date: Optional[str] = None
    save_history: bool = True


@dataclass(frozen=True)
class QuoteOutcome:
    result: CalculationResult
    risk: RiskClassification
    viability: ViabilityAnalysis
    history_record: Optional[HistoricalRecord] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "risk": self.risk.to_dict(),
            "viability": self.viability.to_dict(),
            "history_id": (
                self.history_record.record_id if self.history_record is not None else None
            ),
        }


class QuoteWorkflowService:
    """Resolves the room, prices the quote, rates it and records it."""

    def __init__(
        self,
        repository: DataRepository,
        settings: Optional[Settings] = None,
        budget_service: Optional[BudgetCalculationService] = None,
        history_service: Optional[HistoryService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository
        self._budget_service = budget_service or BudgetCalculationService(
            data_source=repository,
            settings=self._settings,
        )
        self._history_service = history_service or HistoryService(
            repository=repository,
            settings=self._settings,
        )

    def quote(self, request: QuoteRequest) -> QuoteOutcome:
        params = request.parameters
        if request.room_id is not None:
            room = self._repository.get_room(request.room_id)
            if room is None:
                logger.warning(
                    "Unknown room requested; pricing with zero-cost stub | room_id=%s",
                    request.room_id,
                )
                params = replace(params, room=None, incomplete=True)
            else:
                params = replace(params, room=room)

        result = self._budget_service.calculate(params)
        risk = classify_risk(result, incomplete=result.incomplete, settings=self._settings)
        viability = analyze_viability(
            result,
            active_employee_count=result.employee_count,
            settings=self._settings,
        )
        if viability.weekend_staffing_shortfall:
            logger.warning(
                "Weekend quote below minimum staffing | room_id=%s | employees=%s | minimum=%s",
                result.room_id,
                result.employee_count,
                self._settings.weekend_min_staff,
            )

        record = None
        if request.save_history:
            record = self._history_service.record_quote(
                result,
                risk,
                client_name=request.client_name,
                client_contact=request.client_contact,
                event_date=request.event_date,
                schedules=params.schedules,
            )

        return QuoteOutcome(
            result=result,
            risk=risk,
            viability=viability,
            history_record=record,
        )
