"""Quote history: snapshots, conversion tracking, exports and renewal leads."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Iterable, Optional

import pandas as pd

from spacequote.domain.models import (
    CalculationResult,
    HistoricalRecord,
    RenewalOpportunity,
    RiskClassification,
    ScheduleWindow,
    Shift,
)
from spacequote.domain.shifts import infer_predominant_shift
from spacequote.repository.data_repository import DataRepository
from spacequote.services.risk_service import net_margin_percent
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f<>]")
_MAX_CLIENT_FIELD_LENGTH = 120

_SHIFT_CODES = {Shift.MORNING: 1, Shift.AFTERNOON: 2, Shift.EVENING: 3}

HISTORY_CSV_COLUMNS = [
    "date",
    "id",
    "client",
    "contact",
    "unit",
    "space",
    "duration",
    "duration_unit",
    "total_hours",
    "subtotal",
    "margin_amount",
    "discount_amount",
    "final_price",
    "price_per_hour",
    "net_margin_percent",
    "risk_level",
    "converted",
]

ML_DATASET_COLUMNS = [
    "TARGET_CONVERTED",
    "FEATURE_DISCOUNT_PERCENT",
    "FEATURE_NET_MARGIN",
    "FEATURE_LEAD_TIME",
    "FEATURE_TOTAL_VALUE",
    "FEATURE_DURATION_HOURS",
    "CAT_ROOM_ID",
    "CAT_PREDOMINANT_SHIFT",
]


class QuoteError(Exception):
    """Base exception for quote workflow failures."""


class HistoryRecordNotFoundError(QuoteError):
    """Raised when a history record id does not exist in persisted state."""


def sanitize_client_field(value: Optional[str]) -> str:
    """Drop markup and control characters, collapse whitespace, cap the length."""
    if not value:
        return ""
    cleaned = _CONTROL_CHARS.sub(" ", str(value))
    cleaned = " ".join(cleaned.split())
    return cleaned[:_MAX_CLIENT_FIELD_LENGTH]


def compute_lead_time(event_date: Optional[str], now: datetime) -> tuple[Optional[str], Optional[int]]:
    """Whole days from the quote to the event; unparseable dates are dropped."""
    if not event_date:
        return None, None
    try:
        parsed = date.fromisoformat(event_date.strip()[:10])
    except ValueError:
        logger.warning("Ignoring invalid event date | event_date=%s", event_date)
        return None, None
    event_start = datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)
    reference = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    lead_days = math.floor((event_start - reference).total_seconds() / 86400)
    return parsed.isoformat(), lead_days


def months_between(earlier: datetime, later: datetime) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


class HistoryService:
    """Persists quote snapshots and derives exports from them."""

    def __init__(
        self,
        repository: DataRepository,
        settings: Optional[Settings] = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or get_settings()

    def build_record(
        self,
        result: CalculationResult,
        risk: RiskClassification,
        *,
        client_name: Optional[str] = None,
        client_contact: Optional[str] = None,
        event_date: Optional[str] = None,
        schedules: Iterable[ScheduleWindow] = (),
        now: Optional[datetime] = None,
    ) -> HistoricalRecord:
        created_at = now or datetime.now(timezone.utc)
        stored_event_date, lead_time_days = compute_lead_time(event_date, created_at)
        return HistoricalRecord(
            record_id=0,
            created_at=created_at,
            room_id=result.room_id,
            room_name=result.room_name,
            unit=result.unit,
            duration=result.duration,
            duration_unit=result.duration_unit.value,
            total_hours=result.total_hours,
            subtotal=result.subtotal,
            margin_amount=result.margin_amount,
            discount_amount=result.discount_amount,
            discount_percent=result.discount_percent,
            final_price=result.final_price,
            base_cost=result.base_cost,
            net_margin_percent=net_margin_percent(result),
            risk_level=risk.level,
            client_name=sanitize_client_field(client_name),
            client_contact=sanitize_client_field(client_contact),
            converted=False,
            event_date=stored_event_date,
            lead_time_days=lead_time_days,
            predominant_shift=infer_predominant_shift(schedules),
        )

    def record_quote(
        self,
        result: CalculationResult,
        risk: RiskClassification,
        **metadata,
    ) -> HistoricalRecord:
        record = self._repository.save_history_record(
            self.build_record(result, risk, **metadata)
        )
        logger.info(
            "Quote recorded | record_id=%s | room_id=%s | final_price=%.2f | risk=%s",
            record.record_id,
            record.room_id,
            record.final_price,
            record.risk_level.value,
        )
        return record

    def list_recent(self, limit: Optional[int] = None) -> list[HistoricalRecord]:
        return self._repository.list_history(limit=limit)

    def set_conversion(self, record_id: int, converted: bool) -> HistoricalRecord:
        if not self._repository.set_conversion(record_id, converted):
            raise HistoryRecordNotFoundError(f"history record {record_id} not found")
        record = self._repository.get_history_record(record_id)
        if record is None:
            raise HistoryRecordNotFoundError(f"history record {record_id} not found")
        logger.info(
            "Conversion updated | record_id=%s | converted=%s",
            record_id,
            converted,
        )
        return record

    def history_frame(self) -> pd.DataFrame:
        records = self._repository.list_history()
        frame = pd.DataFrame(
            [
                {
                    "date": record.created_at.date().isoformat(),
                    "id": record.record_id,
                    "client": record.client_name,
                    "contact": record.client_contact,
                    "unit": record.unit,
                    "space": record.room_name,
                    "duration": record.duration,
                    "duration_unit": record.duration_unit,
                    "total_hours": round(record.total_hours, 2),
                    "subtotal": round(record.subtotal, 2),
                    "margin_amount": round(record.margin_amount, 2),
                    "discount_amount": round(record.discount_amount, 2),
                    "final_price": round(record.final_price, 2),
                    "price_per_hour": round(record.price_per_hour, 2),
                    "net_margin_percent": round(record.net_margin_percent, 2),
                    "risk_level": record.risk_level.value,
                    "converted": 1 if record.converted else 0,
                }
                for record in records
            ],
            columns=HISTORY_CSV_COLUMNS,
        )
        return frame

    def export_history_csv(self) -> str:
        """Full history as CSV, newest first; header only when empty."""
        return self.history_frame().to_csv(index=False)

    def export_ml_dataset(self) -> str:
        """Conversion dataset: target, numeric features and categorical codes."""
        records = self._repository.list_history()
        frame = pd.DataFrame(
            [
                {
                    "TARGET_CONVERTED": 1 if record.converted else 0,
                    "FEATURE_DISCOUNT_PERCENT": round(record.discount_percent, 2),
                    "FEATURE_NET_MARGIN": round(record.net_margin_percent, 2),
                    "FEATURE_LEAD_TIME": record.lead_time_days,
                    "FEATURE_TOTAL_VALUE": round(record.final_price, 2),
                    "FEATURE_DURATION_HOURS": round(record.total_hours, 2),
                    "CAT_ROOM_ID": record.room_id,
                    "CAT_PREDOMINANT_SHIFT": _SHIFT_CODES.get(record.predominant_shift),
                }
                for record in records
            ],
            columns=ML_DATASET_COLUMNS,
        )
        frame["FEATURE_LEAD_TIME"] = frame["FEATURE_LEAD_TIME"].astype("Int64")
        frame["CAT_PREDOMINANT_SHIFT"] = frame["CAT_PREDOMINANT_SHIFT"].astype("Int64")
        return frame.to_csv(index=False)

    def renewal_opportunities(self, now: Optional[datetime] = None) -> list[RenewalOpportunity]:
        """Clients quoted 11 to 12 calendar months ago, one entry per client."""
        reference = now or datetime.now(timezone.utc)
        seen_clients: set[str] = set()
        opportunities: list[RenewalOpportunity] = []

        for record in self._repository.list_history():
            client = record.client_name.strip()
            if not client:
                continue
            months_ago = months_between(record.created_at, reference)
            if not self._settings.renewal_min_months <= months_ago <= self._settings.renewal_max_months:
                continue
            key = client.lower()
            if key in seen_clients:
                continue
            seen_clients.add(key)
            opportunities.append(
                RenewalOpportunity(
                    record_id=record.record_id,
                    client_name=client,
                    client_contact=record.client_contact or "",
                    space=f"{record.unit} - {record.room_name}",
                    quoted_at=record.created_at.date().isoformat(),
                    months_ago=months_ago,
                    previous_value=record.final_price,
                    converted=record.converted,
                )
            )

        opportunities.sort(key=lambda item: item.months_ago, reverse=True)
        return opportunities
