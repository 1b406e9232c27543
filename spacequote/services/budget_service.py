"""Budget calculation engine for space rental quotes.

Each stage below is a pure function that takes immutable inputs and returns an
immutable struct. ``BudgetCalculationService`` composes them in order:

    normalize -> prorate -> hours -> {room rate, labor, extras}
              -> pricing adjustments -> commission -> result

The service never mutates its inputs and performs no I/O besides reading the
injected ``PricingDataSource``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Iterable, Optional, Protocol, Sequence

from spacequote.domain.constraints import (
    clamp_fraction,
    non_negative,
    normalize_parameters,
    sanitize_commission,
    sanitize_employee,
    sanitize_multipliers,
)
from spacequote.domain.models import (
    CalculationParameters,
    CalculationResult,
    CommissionBreakdown,
    CommissionConfig,
    DayCounts,
    DiscountSource,
    Employee,
    EmployeeCost,
    Extra,
    HourBreakdown,
    LaborTotals,
    PricingBreakdown,
    Room,
    Shift,
    ShiftMultipliers,
)
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)

SATURDAY = 6
SUNDAY = 0


class PricingDataSource(Protocol):
    """Master data the engine reads for every calculation."""

    def active_employees(self) -> Sequence[Employee]: ...

    def extras(self) -> Sequence[Extra]: ...

    def shift_multipliers(self) -> ShiftMultipliers: ...

    def commission_rates(self) -> Optional[CommissionConfig]: ...


@dataclass(frozen=True)
class StaticPricingData:
    """In-memory data source for callers that already hold the master data."""

    employees: tuple[Employee, ...] = ()
    extra_catalog: tuple[Extra, ...] = ()
    multipliers: ShiftMultipliers = field(default_factory=ShiftMultipliers)
    commission: Optional[CommissionConfig] = field(default_factory=CommissionConfig)

    def active_employees(self) -> Sequence[Employee]:
        return [employee for employee in self.employees if employee.active]

    def extras(self) -> Sequence[Extra]:
        return list(self.extra_catalog)

    def shift_multipliers(self) -> ShiftMultipliers:
        return self.multipliers

    def commission_rates(self) -> Optional[CommissionConfig]:
        return self.commission


def prorate_weekdays(duration_in_days: int, weekdays: Iterable[int]) -> DayCounts:
    """Spread a contract length over the selected weekdays.

    Every selected weekday gets one day per full week. A partial trailing week
    adds ``remainder / 7`` to every selected weekday alike instead of walking
    the calendar, so the buckets always sum to ``days / 7 * len(weekdays)``.
    """
    full_weeks, remainder_days = divmod(max(int(duration_in_days), 0), 7)
    partial = remainder_days / 7.0

    normal = saturday = sunday = 0.0
    for weekday in weekdays:
        share = full_weeks + partial
        if weekday == SATURDAY:
            saturday += share
        elif weekday == SUNDAY:
            sunday += share
        else:
            normal += share
    return DayCounts(normal=normal, saturday=saturday, sunday=sunday)


def resolve_shift_rate(
    room: Room,
    shift: Shift,
    multipliers: Optional[ShiftMultipliers] = None,
) -> float:
    """Hourly room cost for a shift.

    An imported per-shift cost wins whenever it is positive; only rooms
    without one fall back to ``base_cost * multiplier``.
    """
    multipliers = sanitize_multipliers(multipliers)
    match shift:
        case Shift.MORNING | Shift.FULL_DAY:
            shift_cost, multiplier = room.morning_cost, multipliers.morning
        case Shift.AFTERNOON:
            shift_cost, multiplier = room.afternoon_cost, multipliers.afternoon
        case Shift.EVENING:
            shift_cost, multiplier = room.evening_cost, multipliers.evening

    if shift_cost is not None and shift_cost > 0:
        return float(shift_cost)
    return non_negative(room.base_cost) * multiplier


def decompose_hours(days: DayCounts, hours_per_day: float) -> HourBreakdown:
    hours = non_negative(hours_per_day)
    return HourBreakdown(
        normal_hours=days.normal * hours,
        ot50_hours=days.saturday * hours,
        ot100_hours=days.sunday * hours,
    )


def aggregate_labor(
    employees: Iterable[Employee],
    hours: HourBreakdown,
    total_days: float,
) -> LaborTotals:
    """Sum labor and daily allowances across active employees."""
    breakdown: list[EmployeeCost] = []
    for raw_employee in employees:
        if not raw_employee.active:
            continue
        employee = sanitize_employee(raw_employee)
        normal_cost = hours.normal_hours * employee.rate_normal
        ot50_cost = hours.ot50_hours * employee.rate_ot50
        ot100_cost = hours.ot100_hours * employee.rate_ot100
        transit_cost = total_days * employee.transit_rate
        ride_cost = total_days * employee.ride_rate
        meal_cost = total_days * employee.meal_rate
        breakdown.append(
            EmployeeCost(
                employee_id=employee.employee_id,
                name=employee.name,
                normal_hours=hours.normal_hours,
                ot50_hours=hours.ot50_hours,
                ot100_hours=hours.ot100_hours,
                normal_cost=normal_cost,
                ot50_cost=ot50_cost,
                ot100_cost=ot100_cost,
                transit_cost=transit_cost,
                ride_cost=ride_cost,
                meal_cost=meal_cost,
                total_cost=(
                    normal_cost + ot50_cost + ot100_cost + transit_cost + ride_cost + meal_cost
                ),
            )
        )

    return LaborTotals(
        labor_normal=sum(item.normal_cost for item in breakdown),
        labor_ot50=sum(item.ot50_cost for item in breakdown),
        labor_ot100=sum(item.ot100_cost for item in breakdown),
        transit_total=sum(item.transit_cost for item in breakdown),
        ride_total=sum(item.ride_cost for item in breakdown),
        meal_total=sum(item.meal_cost for item in breakdown),
        breakdown=tuple(breakdown),
    )


def price_extras(
    extras: Iterable[Extra],
    extra_ids: Iterable[int],
    total_hours: float,
) -> float:
    """Unknown ids are ignored."""
    selected = set(extra_ids)
    return sum(
        non_negative(extra.cost_per_hour) * total_hours
        for extra in extras
        if extra.extra_id in selected
    )


def _non_finite_field_names(record) -> list[str]:
    return [
        item.name
        for item in fields(record)
        if isinstance(getattr(record, item.name), float)
        and not math.isfinite(getattr(record, item.name))
    ]


def zero_non_finite_amounts(result: CalculationResult) -> CalculationResult:
    """Replace any overflowed amount on the result and its breakdown with 0."""
    breakdown = []
    breakdown_changed = False
    for item in result.employee_breakdown:
        names = _non_finite_field_names(item)
        if names:
            breakdown_changed = True
            item = replace(item, **{name: 0.0 for name in names})
        breakdown.append(item)

    names = _non_finite_field_names(result)
    if not names and not breakdown_changed:
        return result

    logger.warning(
        "Non-finite amounts zeroed | room_id=%s | fields=%s",
        result.room_id,
        ",".join(names) or "employee_breakdown",
    )
    return replace(
        result,
        employee_breakdown=tuple(breakdown),
        **{name: 0.0 for name in names},
    )


def volume_discount_rate(duration_in_days: float, settings: Optional[Settings] = None) -> float:
    settings = settings or get_settings()
    if duration_in_days > settings.volume_discount_long_days:
        return settings.volume_discount_long_rate
    if duration_in_days > settings.volume_discount_short_days:
        return settings.volume_discount_short_rate
    return 0.0


def apply_pricing_adjustments(
    subtotal: float,
    margin: float,
    manual_discount: float,
    volume_discount: float,
    total_hours: float,
) -> PricingBreakdown:
    """Margin first, then the larger of the manual and volume discounts.

    The two discounts never stack.
    """
    margin = clamp_fraction(margin)
    manual_discount = clamp_fraction(manual_discount)
    volume_discount = clamp_fraction(volume_discount)

    margin_amount = subtotal * margin
    subtotal_with_margin = subtotal + margin_amount

    effective_discount = max(manual_discount, volume_discount)
    if manual_discount > 0 and manual_discount >= volume_discount:
        source = DiscountSource.MANUAL
    elif volume_discount > manual_discount:
        source = DiscountSource.VOLUME
    else:
        source = DiscountSource.NONE

    discount_amount = subtotal_with_margin * effective_discount
    final_price = subtotal_with_margin - discount_amount
    price_per_hour = final_price / total_hours if total_hours > 0 else 0.0

    return PricingBreakdown(
        subtotal=subtotal,
        margin_amount=margin_amount,
        subtotal_with_margin=subtotal_with_margin,
        manual_discount=manual_discount,
        volume_discount=volume_discount,
        effective_discount=effective_discount,
        discount_source=source,
        discount_amount=discount_amount,
        final_price=final_price,
        price_per_hour=price_per_hour,
    )


def compute_commission(
    final_price: float,
    subtotal: float,
    config: Optional[CommissionConfig],
) -> CommissionBreakdown:
    config = sanitize_commission(config)
    if not config.enabled:
        return CommissionBreakdown(
            seller_commission=0.0,
            management_commission=0.0,
            total_commission=0.0,
            real_net_profit=final_price - subtotal,
        )

    seller = final_price * config.seller_rate
    management = final_price * config.management_rate
    total = seller + management
    return CommissionBreakdown(
        seller_commission=seller,
        management_commission=management,
        total_commission=total,
        real_net_profit=final_price - subtotal - total,
    )


class BudgetCalculationService:
    """Turns quote parameters into an itemized ``CalculationResult``."""

    def __init__(
        self,
        data_source: PricingDataSource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._data_source = data_source
        self._settings = settings or get_settings()

    def calculate(self, params: CalculationParameters) -> CalculationResult:
        normalized = normalize_parameters(params, self._settings)
        if normalized.defaulted_fields:
            logger.warning(
                "Quote parameters defaulted | room_id=%s | fields=%s",
                normalized.room.room_id,
                ",".join(normalized.defaulted_fields),
            )

        days = prorate_weekdays(normalized.duration_in_days, normalized.selected_weekdays)
        hours = decompose_hours(days, normalized.hours_per_day)
        total_hours = hours.total_hours

        hourly_rate = resolve_shift_rate(
            normalized.room,
            normalized.shift,
            self._data_source.shift_multipliers(),
        )
        base_cost = hourly_rate * total_hours
        labor = aggregate_labor(self._data_source.active_employees(), hours, days.total)
        extras_cost = price_extras(
            self._data_source.extras(),
            normalized.extra_ids,
            total_hours,
        )

        subtotal = (
            base_cost
            + labor.labor_total
            + labor.transit_total
            + labor.ride_total
            + labor.meal_total
            + extras_cost
        )
        pricing = apply_pricing_adjustments(
            subtotal=subtotal,
            margin=normalized.margin,
            manual_discount=normalized.discount,
            volume_discount=volume_discount_rate(normalized.duration_in_days, self._settings),
            total_hours=total_hours,
        )
        commission = compute_commission(
            pricing.final_price,
            pricing.subtotal,
            self._data_source.commission_rates(),
        )

        result = CalculationResult(
            room_id=normalized.room.room_id,
            room_name=normalized.room.name,
            unit=normalized.room.unit,
            shift=normalized.shift,
            room_hourly_rate=hourly_rate,
            duration=normalized.duration,
            duration_unit=normalized.duration_unit,
            duration_in_days=normalized.duration_in_days,
            selected_weekdays=normalized.selected_weekdays,
            hours_per_day=normalized.hours_per_day,
            normal_days=days.normal,
            saturday_days=days.saturday,
            sunday_days=days.sunday,
            total_days=days.total,
            normal_hours=hours.normal_hours,
            ot50_hours=hours.ot50_hours,
            ot100_hours=hours.ot100_hours,
            total_hours=total_hours,
            base_cost=base_cost,
            labor_normal=labor.labor_normal,
            labor_ot50=labor.labor_ot50,
            labor_ot100=labor.labor_ot100,
            labor_total=labor.labor_total,
            transit_total=labor.transit_total,
            ride_total=labor.ride_total,
            meal_total=labor.meal_total,
            extras_cost=extras_cost,
            subtotal=pricing.subtotal,
            margin=normalized.margin,
            margin_amount=pricing.margin_amount,
            subtotal_with_margin=pricing.subtotal_with_margin,
            manual_discount=pricing.manual_discount,
            volume_discount=pricing.volume_discount,
            effective_discount=pricing.effective_discount,
            discount_source=pricing.discount_source,
            discount_amount=pricing.discount_amount,
            final_price=pricing.final_price,
            price_per_hour=pricing.price_per_hour,
            employee_count=labor.employee_count,
            employee_breakdown=labor.breakdown,
            seller_commission=commission.seller_commission,
            management_commission=commission.management_commission,
            total_commission=commission.total_commission,
            real_net_profit=commission.real_net_profit,
            loss_flag=commission.loss_flag,
            incomplete=normalized.incomplete,
            defaulted_fields=normalized.defaulted_fields,
        )
        result = zero_non_finite_amounts(result)

        logger.info(
            "Quote calculated | room_id=%s | shift=%s | total_hours=%.2f | "
            "subtotal=%.2f | final_price=%.2f | discount_source=%s",
            result.room_id,
            result.shift.value,
            result.total_hours,
            result.subtotal,
            result.final_price,
            result.discount_source.value,
        )
        if result.loss_flag:
            logger.warning(
                "Quote below cost after commission | room_id=%s | real_net_profit=%.2f",
                result.room_id,
                result.real_net_profit,
            )
        return result
