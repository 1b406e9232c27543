"""Dashboard roll-ups over persisted quote history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

import pandas as pd

from spacequote.domain.models import (
    AnalyticsKpis,
    AnalyticsSummary,
    HistoricalRecord,
    MonthlyAnalytics,
    UnitAnalytics,
)
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)


class HistorySource(Protocol):
    def list_history(self, limit: Optional[int] = None) -> list[HistoricalRecord]: ...


def _as_utc_timestamp(moment: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(moment)
    if stamp.tzinfo is None:
        return stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC")


def _build_history_frame(
    records: Sequence[HistoricalRecord],
    fixed_cost_ratio: float,
) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "created_at": record.created_at,
                "unit": record.unit,
                "final_price": float(record.final_price or 0.0),
                "subtotal": float(record.subtotal or 0.0),
                "base_cost": float(record.base_cost or 0.0),
                "net_margin_percent": float(record.net_margin_percent or 0.0),
                "converted": bool(record.converted),
            }
            for record in records
        ]
    )
    if frame.empty:
        return frame

    frame["created_at"] = pd.to_datetime(frame["created_at"], utc=True)

    # Fixed part is the stored room cost, or an estimate, never above the subtotal.
    estimated = frame["subtotal"] * fixed_cost_ratio
    fixed = frame["base_cost"].where(frame["base_cost"] > 0, estimated)
    frame["fixed_cost"] = fixed.clip(upper=frame["subtotal"])
    frame["variable_cost"] = (frame["subtotal"] - frame["fixed_cost"]).clip(lower=0.0)
    frame["contribution_margin"] = frame["final_price"] - frame["variable_cost"]
    frame["net_margin"] = frame["final_price"] - frame["subtotal"]
    return frame


def aggregate_history(
    records: Sequence[HistoricalRecord],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> AnalyticsSummary:
    """Aggregate the trailing window of history into KPIs, units and months.

    Records older than ``analytics_window_months`` are ignored; the monthly
    series only covers the last ``analytics_series_months``. An empty window
    returns a zeroed summary.
    """
    settings = settings or get_settings()
    reference = _as_utc_timestamp(now or datetime.now(timezone.utc))

    frame = _build_history_frame(records, settings.fixed_cost_estimate_ratio)
    if frame.empty:
        return AnalyticsSummary()

    window_start = reference - pd.DateOffset(months=settings.analytics_window_months)
    recent = frame[frame["created_at"] >= window_start]
    if recent.empty:
        return AnalyticsSummary()

    total_revenue = float(recent["final_price"].sum())
    kpis = AnalyticsKpis(
        total_revenue=total_revenue,
        confirmed_revenue=float(recent.loc[recent["converted"], "final_price"].sum()),
        average_net_margin=float(recent["net_margin_percent"].mean()),
        average_ticket=total_revenue / len(recent),
    )

    unit_totals = recent.groupby("unit", sort=True).agg(
        revenue=("final_price", "sum"),
        variable_cost=("variable_cost", "sum"),
        fixed_cost=("fixed_cost", "sum"),
        contribution_margin=("contribution_margin", "sum"),
        count=("final_price", "size"),
    )
    by_unit = {
        str(unit): UnitAnalytics(
            revenue=float(row["revenue"]),
            variable_cost=float(row["variable_cost"]),
            fixed_cost=float(row["fixed_cost"]),
            contribution_margin=float(row["contribution_margin"]),
            count=int(row["count"]),
        )
        for unit, row in unit_totals.iterrows()
    }

    series_start = reference - pd.DateOffset(months=settings.analytics_series_months)
    series = recent[recent["created_at"] >= series_start].copy()
    monthly: list[MonthlyAnalytics] = []
    if not series.empty:
        series["month"] = series["created_at"].dt.strftime("%Y-%m")
        month_totals = series.groupby("month", sort=True).agg(
            revenue=("final_price", "sum"),
            costs=("subtotal", "sum"),
            net_margin=("net_margin", "sum"),
            count=("final_price", "size"),
        )
        for month, row in month_totals.iterrows():
            revenue = float(row["revenue"])
            net_margin = float(row["net_margin"])
            monthly.append(
                MonthlyAnalytics(
                    month=str(month),
                    revenue=revenue,
                    costs=float(row["costs"]),
                    net_margin=net_margin,
                    net_margin_percent=net_margin / revenue * 100.0 if revenue > 0 else 0.0,
                    count=int(row["count"]),
                )
            )

    return AnalyticsSummary(kpis=kpis, by_unit=by_unit, monthly=monthly)


class AnalyticsService:
    """Reads history from the repository and aggregates it for the dashboard."""

    def __init__(
        self,
        repository: HistorySource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or get_settings()

    def summarize(self, now: Optional[datetime] = None) -> AnalyticsSummary:
        records = self._repository.list_history()
        summary = aggregate_history(records, now=now, settings=self._settings)
        logger.info(
            "Analytics aggregated | records=%s | units=%s | months=%s | total_revenue=%.2f",
            len(records),
            len(summary.by_unit),
            len(summary.monthly),
            summary.kpis.total_revenue,
        )
        return summary
