"""Parameter normalization rules applied before any pricing arithmetic."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Optional

from spacequote.domain.models import (
    ZERO_COST_ROOM,
    CalculationParameters,
    CommissionConfig,
    DurationUnit,
    Employee,
    NormalizedParameters,
    Room,
    Shift,
    ShiftMultipliers,
)
from spacequote.domain.shifts import infer_predominant_shift, resolve_shift, total_hours_per_day
from spacequote.utils.config import Settings, get_settings


_DURATION_UNIT_ALIASES: dict[str, DurationUnit] = {
    "day": DurationUnit.DAYS,
    "days": DurationUnit.DAYS,
    "dias": DurationUnit.DAYS,
    "month": DurationUnit.MONTHS,
    "months": DurationUnit.MONTHS,
    "meses": DurationUnit.MONTHS,
}

HOURS_PER_DAY_LIMIT = 24.0


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a finite float, or ``default`` when it is not one."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return number


def non_negative(value: Any) -> float:
    return max(coerce_float(value), 0.0)


def clamp_fraction(value: Any) -> float:
    return min(max(coerce_float(value), 0.0), 1.0)


def sanitize_room(room: Room) -> Room:
    def shift_cost(value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        number = coerce_float(value)
        return number if number > 0 else None

    return replace(
        room,
        base_cost=non_negative(room.base_cost),
        morning_cost=shift_cost(room.morning_cost),
        afternoon_cost=shift_cost(room.afternoon_cost),
        evening_cost=shift_cost(room.evening_cost),
    )


def sanitize_employee(employee: Employee) -> Employee:
    return replace(
        employee,
        rate_normal=non_negative(employee.rate_normal),
        rate_ot50=non_negative(employee.rate_ot50),
        rate_ot100=non_negative(employee.rate_ot100),
        transit_rate=non_negative(employee.transit_rate),
        ride_rate=non_negative(employee.ride_rate),
        meal_rate=non_negative(employee.meal_rate),
    )


def sanitize_multipliers(multipliers: Optional[ShiftMultipliers]) -> ShiftMultipliers:
    defaults = ShiftMultipliers()
    if multipliers is None:
        return defaults

    def positive(value: Any, fallback: float) -> float:
        number = coerce_float(value, fallback)
        return number if number > 0 else fallback

    return ShiftMultipliers(
        morning=positive(multipliers.morning, defaults.morning),
        afternoon=positive(multipliers.afternoon, defaults.afternoon),
        evening=positive(multipliers.evening, defaults.evening),
    )


def sanitize_commission(config: Optional[CommissionConfig]) -> CommissionConfig:
    if config is None:
        return CommissionConfig(enabled=False, seller_rate=0.0, management_rate=0.0)
    return CommissionConfig(
        enabled=bool(config.enabled),
        seller_rate=clamp_fraction(config.seller_rate),
        management_rate=clamp_fraction(config.management_rate),
    )


def _normalize_duration(value: Any) -> Optional[int]:
    number = coerce_float(value, default=0.0)
    duration = int(number)
    if duration <= 0:
        return None
    return duration


def _normalize_weekdays(values: Optional[tuple[int, ...]]) -> tuple[int, ...]:
    if not values:
        return ()
    weekdays: set[int] = set()
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            weekday = int(value)
        except (TypeError, ValueError, OverflowError):
            continue
        if 0 <= weekday <= 6:
            weekdays.add(weekday)
    return tuple(sorted(weekdays))


def _normalize_extra_ids(values: Any) -> frozenset[int]:
    extra_ids: set[int] = set()
    for value in values or ():
        try:
            extra_ids.add(int(value))
        except (TypeError, ValueError, OverflowError):
            continue
    return frozenset(extra_ids)


def normalize_parameters(
    params: CalculationParameters,
    settings: Optional[Settings] = None,
) -> NormalizedParameters:
    """Produce a fully populated parameter struct; never raises on bad numbers.

    Every substituted default is recorded in ``defaulted_fields``. A missing
    room or an empty weekday selection marks the quote as incomplete.
    """
    settings = settings or get_settings()
    defaulted: list[str] = []

    if params.room is None:
        room = ZERO_COST_ROOM
        defaulted.append("room")
    else:
        room = sanitize_room(params.room)

    duration = _normalize_duration(params.duration)
    if duration is None:
        duration = settings.default_duration
        defaulted.append("duration")

    unit_key = (params.duration_unit or "").strip().lower()
    duration_unit = _DURATION_UNIT_ALIASES.get(unit_key)
    if duration_unit is None:
        duration_unit = DurationUnit.MONTHS
        defaulted.append("duration_unit")

    # Contracts longer than the configured ceiling are priced at the ceiling.
    if duration_unit is DurationUnit.MONTHS:
        duration = min(duration, max(settings.max_duration_days // settings.days_per_month, 1))
        duration_in_days = duration * settings.days_per_month
    else:
        duration = min(duration, settings.max_duration_days)
        duration_in_days = duration

    weekdays = _normalize_weekdays(params.selected_weekdays)
    if not weekdays:
        weekdays = (settings.default_weekday,)
        defaulted.append("selected_weekdays")

    hours_per_day = coerce_float(params.hours_per_day, default=-1.0)
    if hours_per_day < 0:
        if params.schedules:
            hours_per_day = total_hours_per_day(params.schedules)
        else:
            hours_per_day = settings.default_hours_per_day
            defaulted.append("hours_per_day")
    hours_per_day = min(hours_per_day, HOURS_PER_DAY_LIMIT)

    if params.margin is None:
        defaulted.append("margin")
    if params.discount is None:
        defaulted.append("discount")

    if params.shift:
        shift = resolve_shift(params.shift)
    else:
        shift = infer_predominant_shift(params.schedules) or Shift.MORNING

    incomplete = bool(params.incomplete) or "room" in defaulted or "selected_weekdays" in defaulted

    return NormalizedParameters(
        room=room,
        duration=duration,
        duration_unit=duration_unit,
        duration_in_days=duration_in_days,
        selected_weekdays=weekdays,
        hours_per_day=hours_per_day,
        margin=clamp_fraction(params.margin),
        discount=clamp_fraction(params.discount),
        extra_ids=_normalize_extra_ids(params.extra_ids),
        shift=shift,
        incomplete=incomplete,
        defaulted_fields=tuple(defaulted),
    )
