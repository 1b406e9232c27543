from __future__ import annotations

import math
from dataclasses import fields, replace

import pytest

from spacequote.domain.models import (
    CalculationParameters,
    CommissionConfig,
    DayCounts,
    DiscountSource,
    Employee,
    Extra,
    HourBreakdown,
    Room,
    Shift,
    ShiftMultipliers,
)
from spacequote.services.budget_service import (
    BudgetCalculationService,
    StaticPricingData,
    aggregate_labor,
    apply_pricing_adjustments,
    compute_commission,
    decompose_hours,
    price_extras,
    prorate_weekdays,
    resolve_shift_rate,
    volume_discount_rate,
)
from spacequote.utils.config import get_settings


WEEKDAYS = (1, 2, 3, 4, 5)
ALL_DAYS = (0, 1, 2, 3, 4, 5, 6)

ROOM = Room(
    room_id=1,
    name="Auditório",
    unit="DJLM",
    base_cost=80.0,
    morning_cost=100.0,
)

EMPLOYEE = Employee(
    employee_id=1,
    name="Operator",
    rate_normal=15.0,
    rate_ot50=22.5,
    rate_ot100=30.0,
    transit_rate=12.0,
)


def _build_test_settings():
    get_settings.cache_clear()
    return get_settings()


def _build_service(
    employees=(EMPLOYEE,),
    extras=(),
    commission=CommissionConfig(),
) -> BudgetCalculationService:
    data = StaticPricingData(
        employees=tuple(employees),
        extra_catalog=tuple(extras),
        multipliers=ShiftMultipliers(),
        commission=commission,
    )
    return BudgetCalculationService(data_source=data, settings=_build_test_settings())


def _numeric_values(result) -> list[float]:
    values = []
    for item in fields(result):
        value = getattr(result, item.name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            values.append(float(value))
    return values


# --- Proration ---

def test_proration_full_weeks_only() -> None:
    days = prorate_weekdays(14, WEEKDAYS)

    assert days == DayCounts(normal=10.0, saturday=0.0, sunday=0.0)


def test_proration_spreads_remainder_evenly_over_selected_weekdays() -> None:
    # 10 days = 1 full week + 3 days; every selected weekday gets 3/7 on top,
    # regardless of which calendar days the remainder would actually hit.
    days = prorate_weekdays(10, (1, 6, 0))

    assert days.normal == pytest.approx(1 + 3 / 7)
    assert days.saturday == pytest.approx(1 + 3 / 7)
    assert days.sunday == pytest.approx(1 + 3 / 7)


@pytest.mark.parametrize("duration_in_days", [1, 3, 7, 8, 30, 90, 365])
@pytest.mark.parametrize("weekdays", [(1,), WEEKDAYS, ALL_DAYS, (6,), (0, 6)])
def test_proration_sum_matches_weeks_times_weekdays(duration_in_days, weekdays) -> None:
    days = prorate_weekdays(duration_in_days, weekdays)

    assert days.total == pytest.approx(duration_in_days / 7 * len(weekdays))


# --- Shift rate ---

def test_per_shift_cost_wins_over_multiplier() -> None:
    room = Room(2, "Sala", "UTV", base_cost=50.0, afternoon_cost=60.0)

    assert resolve_shift_rate(room, Shift.AFTERNOON, ShiftMultipliers()) == 60.0


def test_base_cost_times_multiplier_when_shift_cost_missing() -> None:
    room = Room(2, "Sala", "UTV", base_cost=50.0)

    assert resolve_shift_rate(room, Shift.MORNING) == pytest.approx(50.0)
    assert resolve_shift_rate(room, Shift.AFTERNOON) == pytest.approx(57.5)
    assert resolve_shift_rate(room, Shift.EVENING) == pytest.approx(70.0)


def test_full_day_uses_morning_shift_cost() -> None:
    assert resolve_shift_rate(ROOM, Shift.FULL_DAY) == 100.0


def test_zero_shift_cost_falls_back_to_base() -> None:
    room = Room(2, "Sala", "UTV", base_cost=40.0, evening_cost=0.0)

    assert resolve_shift_rate(room, Shift.EVENING, ShiftMultipliers(evening=1.5)) == pytest.approx(60.0)


# --- Hours / labor / extras ---

def test_decompose_hours_maps_weekend_days_to_overtime_tiers() -> None:
    hours = decompose_hours(DayCounts(normal=5.0, saturday=1.0, sunday=0.5), 8.0)

    assert hours == HourBreakdown(normal_hours=40.0, ot50_hours=8.0, ot100_hours=4.0)
    assert hours.total_hours == 52.0


def test_labor_skips_inactive_employees_and_sums_allowances() -> None:
    inactive = replace(EMPLOYEE, employee_id=2, active=False)
    hours = HourBreakdown(normal_hours=10.0, ot50_hours=2.0, ot100_hours=1.0)

    labor = aggregate_labor([EMPLOYEE, inactive], hours, total_days=3.0)

    assert labor.employee_count == 1
    assert labor.labor_normal == pytest.approx(150.0)
    assert labor.labor_ot50 == pytest.approx(45.0)
    assert labor.labor_ot100 == pytest.approx(30.0)
    assert labor.transit_total == pytest.approx(36.0)
    assert labor.breakdown[0].total_cost == pytest.approx(150.0 + 45.0 + 30.0 + 36.0)


def test_labor_with_no_employees_is_zero() -> None:
    labor = aggregate_labor([], HourBreakdown(10.0, 0.0, 0.0), total_days=2.0)

    assert labor.labor_total == 0.0
    assert labor.breakdown == ()


def test_extras_ignore_unknown_ids() -> None:
    extras = [Extra(1, "Coffee", 50.0), Extra(2, "Print", 15.0)]

    assert price_extras(extras, {1, 99}, total_hours=4.0) == pytest.approx(200.0)


# --- Pricing / commission ---

@pytest.mark.parametrize(
    ("days", "expected"),
    [(1, 0.0), (3, 0.0), (4, 0.05), (7, 0.05), (8, 0.10), (30, 0.10)],
)
def test_volume_discount_tiers(days, expected) -> None:
    assert volume_discount_rate(days, _build_test_settings()) == expected


def test_discounts_never_stack() -> None:
    pricing = apply_pricing_adjustments(
        subtotal=1000.0,
        margin=0.2,
        manual_discount=0.05,
        volume_discount=0.10,
        total_hours=10.0,
    )

    assert pricing.effective_discount == 0.10
    assert pricing.discount_source is DiscountSource.VOLUME
    assert pricing.final_price == pytest.approx(1200.0 * 0.9)


def test_manual_discount_wins_ties() -> None:
    pricing = apply_pricing_adjustments(1000.0, 0.0, 0.10, 0.10, 10.0)

    assert pricing.discount_source is DiscountSource.MANUAL


def test_no_discount_source_when_both_zero() -> None:
    pricing = apply_pricing_adjustments(1000.0, 0.0, 0.0, 0.0, 10.0)

    assert pricing.discount_source is DiscountSource.NONE
    assert pricing.final_price == 1000.0


def test_commission_enabled_reduces_net_profit() -> None:
    commission = compute_commission(1000.0, 700.0, CommissionConfig())

    assert commission.seller_commission == pytest.approx(80.0)
    assert commission.management_commission == pytest.approx(20.0)
    assert commission.real_net_profit == pytest.approx(200.0)
    assert commission.loss_flag is False


def test_commission_loss_flag_is_informational() -> None:
    commission = compute_commission(1000.0, 950.0, CommissionConfig())

    assert commission.real_net_profit == pytest.approx(-50.0)
    assert commission.loss_flag is True


# --- End-to-end scenarios ---

def test_scenario_a_weekday_month_contract() -> None:
    service = _build_service()

    result = service.calculate(
        CalculationParameters(
            room=ROOM,
            duration=1,
            duration_unit="months",
            selected_weekdays=WEEKDAYS,
            hours_per_day=8,
            margin=0.20,
            discount=0.10,
        )
    )

    assert result.total_days == pytest.approx(21.43, abs=0.01)
    assert result.total_hours == pytest.approx(171.43, abs=0.01)
    assert result.ot50_hours == 0.0
    assert result.ot100_hours == 0.0
    assert result.room_hourly_rate == 100.0
    assert result.base_cost == pytest.approx(100.0 * result.total_hours)
    assert result.labor_normal == pytest.approx(15.0 * result.total_hours)
    assert result.transit_total == pytest.approx(12.0 * result.total_days)
    assert result.final_price == pytest.approx(result.subtotal * 1.2 * 0.9)
    assert result.final_price > 0
    assert result.incomplete is False


def test_scenario_b_every_day_produces_all_hour_tiers() -> None:
    result = _build_service().calculate(
        CalculationParameters(
            room=ROOM,
            duration=3,
            duration_unit="months",
            selected_weekdays=ALL_DAYS,
            hours_per_day=6,
        )
    )

    assert result.normal_hours > 0
    assert result.ot50_hours > 0
    assert result.ot100_hours > 0
    assert result.labor_ot50 > 0
    assert result.labor_ot100 > 0


def test_scenario_c_no_margin_no_discount_short_contract() -> None:
    result = _build_service().calculate(
        CalculationParameters(
            room=ROOM,
            duration=2,
            duration_unit="days",
            selected_weekdays=WEEKDAYS,
            hours_per_day=8,
            margin=0,
            discount=0,
        )
    )

    assert result.final_price == result.subtotal
    assert result.discount_source is DiscountSource.NONE


@pytest.mark.parametrize("duration", [1, 2, 6])
def test_scenario_d_saturday_only(duration) -> None:
    result = _build_service().calculate(
        CalculationParameters(
            room=ROOM,
            duration=duration,
            duration_unit="months",
            selected_weekdays=(6,),
            hours_per_day=8,
        )
    )

    assert result.normal_hours == 0
    assert result.ot100_hours == 0
    assert result.ot50_hours > 0


def test_scenario_e_commission_disabled() -> None:
    service = _build_service(commission=CommissionConfig(enabled=False))

    result = service.calculate(
        CalculationParameters(room=ROOM, duration=1, selected_weekdays=WEEKDAYS, margin=0.3)
    )

    assert result.total_commission == 0
    assert result.real_net_profit == pytest.approx(result.final_price - result.subtotal)


# --- Properties ---

@pytest.mark.parametrize("margin", [0.0, 0.15, 0.5, 1.0])
@pytest.mark.parametrize("discount", [0.0, 0.02, 0.25])
@pytest.mark.parametrize("duration", [1, 5, 20])
def test_pricing_identities_hold(margin, discount, duration) -> None:
    result = _build_service(extras=(Extra(1, "Coffee", 50.0),)).calculate(
        CalculationParameters(
            room=ROOM,
            duration=duration,
            duration_unit="days",
            selected_weekdays=(1, 3, 6),
            hours_per_day=5,
            margin=margin,
            discount=discount,
            extra_ids=(1, 42),
        )
    )

    assert result.subtotal_with_margin == pytest.approx(result.subtotal + result.margin_amount)
    assert result.final_price == pytest.approx(result.subtotal_with_margin - result.discount_amount)
    assert result.effective_discount == max(result.manual_discount, result.volume_discount)
    assert result.final_price >= 0
    assert result.price_per_hour >= 0
    assert result.extras_cost == pytest.approx(50.0 * result.total_hours)


def test_zero_active_employees_means_zero_labor() -> None:
    result = _build_service(employees=(replace(EMPLOYEE, active=False),)).calculate(
        CalculationParameters(room=ROOM, duration=1, selected_weekdays=WEEKDAYS)
    )

    assert result.labor_total == 0
    assert result.employee_breakdown == ()
    assert result.employee_count == 0


def test_zero_hours_per_day_gives_zero_price_per_hour() -> None:
    result = _build_service().calculate(
        CalculationParameters(room=ROOM, duration=1, selected_weekdays=WEEKDAYS, hours_per_day=0)
    )

    assert result.total_hours == 0
    assert result.price_per_hour == 0
    assert all(math.isfinite(value) for value in _numeric_values(result))


def test_missing_room_prices_with_zero_cost_stub() -> None:
    result = _build_service(employees=()).calculate(CalculationParameters())

    assert result.room_id == 0
    assert result.base_cost == 0
    assert result.final_price == 0
    assert result.price_per_hour == 0
    assert result.incomplete is True
    assert "room" in result.defaulted_fields


def test_to_dict_serializes_enums_and_breakdown() -> None:
    result = _build_service().calculate(
        CalculationParameters(room=ROOM, duration=1, selected_weekdays=WEEKDAYS)
    )

    payload = result.to_dict()

    assert payload["shift"] == "morning"
    assert payload["duration_unit"] == "months"
    assert payload["discount_source"] == "volume"
    assert payload["employee_breakdown"][0]["employee_id"] == 1
    assert payload["margin_percent"] == 0.0


def test_overflowing_master_data_is_zeroed_instead_of_propagating() -> None:
    huge_rate = Employee(employee_id=9, name="Typo", rate_normal=1e308, rate_ot50=1e308)
    service = _build_service(employees=(huge_rate,))

    result = service.calculate(
        CalculationParameters(
            room=replace(ROOM, morning_cost=1e308),
            duration=12,
            duration_unit="months",
            selected_weekdays=ALL_DAYS,
            hours_per_day=24,
            margin=0.5,
        )
    )

    assert all(math.isfinite(value) for value in _numeric_values(result))
    assert result.base_cost == 0.0
    assert result.final_price == 0.0
    assert result.price_per_hour == 0.0
    assert result.employee_breakdown[0].normal_cost == 0.0
    assert result.total_hours > 0
