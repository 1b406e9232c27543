"""Risk classification and viability indicators derived from a quote result."""

from __future__ import annotations

from typing import Optional

from spacequote.domain.models import (
    CalculationResult,
    RiskClassification,
    RiskLevel,
    ViabilityAnalysis,
)
from spacequote.services.budget_service import SATURDAY, SUNDAY
from spacequote.utils.config import Settings, get_settings


def variable_cost_ratio(result: CalculationResult) -> float:
    """Variable cost as a percentage of final price; 0 when there is no price."""
    if result.final_price <= 0:
        return 0.0
    return result.variable_cost / result.final_price * 100.0


def classify_risk(
    result: CalculationResult,
    incomplete: bool = False,
    settings: Optional[Settings] = None,
) -> RiskClassification:
    """Bucket the variable-cost ratio into LOW, MEDIUM or HIGH.

    Incomplete input is always HIGH, whatever the ratio says.
    """
    settings = settings or get_settings()
    ratio = variable_cost_ratio(result)

    if incomplete or result.incomplete:
        return RiskClassification(level=RiskLevel.HIGH, variable_cost_ratio=ratio, forced=True)

    if ratio > settings.risk_high_threshold:
        level = RiskLevel.HIGH
    elif ratio >= settings.risk_medium_threshold:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return RiskClassification(level=level, variable_cost_ratio=ratio)


def net_margin_percent(result: CalculationResult) -> float:
    if result.final_price <= 0:
        return 0.0
    return (result.final_price - result.subtotal) / result.final_price * 100.0


def analyze_viability(
    result: CalculationResult,
    active_employee_count: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> ViabilityAnalysis:
    """Contribution margin and break-even price for a quote.

    The room cost is the fixed part; labor and daily allowances are variable.
    Weekend work with fewer than the minimum staff is flagged, never rejected.
    """
    settings = settings or get_settings()
    staff = result.employee_count if active_employee_count is None else active_employee_count

    fixed_cost = result.base_cost
    variable_cost = result.variable_cost
    contribution_margin = result.final_price - variable_cost
    contribution_margin_percent = (
        contribution_margin / result.final_price * 100.0 if result.final_price > 0 else 0.0
    )
    break_even_price = (
        fixed_cost / (contribution_margin_percent / 100.0)
        if contribution_margin_percent > 0
        else 0.0
    )

    works_weekend = any(day in (SATURDAY, SUNDAY) for day in result.selected_weekdays)
    return ViabilityAnalysis(
        net_margin_percent=net_margin_percent(result),
        fixed_cost=fixed_cost,
        variable_cost=variable_cost,
        contribution_margin=contribution_margin,
        contribution_margin_percent=contribution_margin_percent,
        break_even_price=break_even_price,
        below_break_even=result.final_price < break_even_price,
        weekend_staffing_shortfall=works_weekend and staff < settings.weekend_min_staff,
    )
