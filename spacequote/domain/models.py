"""Domain models for space rental budgeting and history analytics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Shift(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    FULL_DAY = "full-day"


class DurationUnit(str, Enum):
    DAYS = "days"
    MONTHS = "months"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DiscountSource(str, Enum):
    MANUAL = "manual"
    VOLUME = "volume"
    NONE = "none"


@dataclass(frozen=True)
class Room:
    room_id: int
    name: str
    unit: str
    base_cost: float
    capacity: int = 0
    area: float = 0.0
    morning_cost: Optional[float] = None
    afternoon_cost: Optional[float] = None
    evening_cost: Optional[float] = None


ZERO_COST_ROOM = Room(
    room_id=0,
    name="Unassigned space",
    unit="UNASSIGNED",
    base_cost=0.0,
)


@dataclass(frozen=True)
class ShiftMultipliers:
    morning: float = 1.00
    afternoon: float = 1.15
    evening: float = 1.40


@dataclass(frozen=True)
class Employee:
    employee_id: int
    name: str
    rate_normal: float = 0.0
    rate_ot50: float = 0.0
    rate_ot100: float = 0.0
    transit_rate: float = 0.0
    ride_rate: float = 0.0
    meal_rate: float = 0.0
    active: bool = True


@dataclass(frozen=True)
class Extra:
    extra_id: int
    name: str
    cost_per_hour: float


@dataclass(frozen=True)
class CommissionConfig:
    enabled: bool = True
    seller_rate: float = 0.08
    management_rate: float = 0.02


@dataclass(frozen=True)
class ScheduleWindow:
    """Daily usage window in ``HH:MM`` 24-hour notation."""

    start: str
    end: str


@dataclass(frozen=True)
class CalculationParameters:
    """Raw, possibly incomplete quote inputs as supplied by a caller."""

    room: Optional[Room] = None
    duration: Optional[int] = None
    duration_unit: Optional[str] = None
    selected_weekdays: Optional[tuple[int, ...]] = None
    hours_per_day: Optional[float] = None
    margin: Optional[float] = None
    discount: Optional[float] = None
    extra_ids: tuple[int, ...] = ()
    shift: Optional[str] = None
    schedules: tuple[ScheduleWindow, ...] = ()
    incomplete: bool = False


@dataclass(frozen=True)
class NormalizedParameters:
    """Fully populated quote inputs; downstream formulas never re-check them."""

    room: Room
    duration: int
    duration_unit: DurationUnit
    duration_in_days: int
    selected_weekdays: tuple[int, ...]
    hours_per_day: float
    margin: float
    discount: float
    extra_ids: frozenset[int]
    shift: Shift
    incomplete: bool
    defaulted_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class DayCounts:
    normal: float
    saturday: float
    sunday: float

    @property
    def total(self) -> float:
        return self.normal + self.saturday + self.sunday


@dataclass(frozen=True)
class HourBreakdown:
    normal_hours: float
    ot50_hours: float
    ot100_hours: float

    @property
    def total_hours(self) -> float:
        return self.normal_hours + self.ot50_hours + self.ot100_hours


@dataclass(frozen=True)
class EmployeeCost:
    employee_id: int
    name: str
    normal_hours: float
    ot50_hours: float
    ot100_hours: float
    normal_cost: float
    ot50_cost: float
    ot100_cost: float
    transit_cost: float
    ride_cost: float
    meal_cost: float
    total_cost: float


@dataclass(frozen=True)
class LaborTotals:
    labor_normal: float = 0.0
    labor_ot50: float = 0.0
    labor_ot100: float = 0.0
    transit_total: float = 0.0
    ride_total: float = 0.0
    meal_total: float = 0.0
    breakdown: tuple[EmployeeCost, ...] = ()

    @property
    def labor_total(self) -> float:
        return self.labor_normal + self.labor_ot50 + self.labor_ot100

    @property
    def employee_count(self) -> int:
        return len(self.breakdown)


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: float
    margin_amount: float
    subtotal_with_margin: float
    manual_discount: float
    volume_discount: float
    effective_discount: float
    discount_source: DiscountSource
    discount_amount: float
    final_price: float
    price_per_hour: float


@dataclass(frozen=True)
class CommissionBreakdown:
    seller_commission: float
    management_commission: float
    total_commission: float
    real_net_profit: float

    @property
    def loss_flag(self) -> bool:
        return self.real_net_profit < 0


@dataclass(frozen=True)
class CalculationResult:
    room_id: int
    room_name: str
    unit: str
    shift: Shift
    room_hourly_rate: float
    duration: int
    duration_unit: DurationUnit
    duration_in_days: int
    selected_weekdays: tuple[int, ...]
    hours_per_day: float

    normal_days: float
    saturday_days: float
    sunday_days: float
    total_days: float
    normal_hours: float
    ot50_hours: float
    ot100_hours: float
    total_hours: float

    base_cost: float
    labor_normal: float
    labor_ot50: float
    labor_ot100: float
    labor_total: float
    transit_total: float
    ride_total: float
    meal_total: float
    extras_cost: float

    subtotal: float
    margin: float
    margin_amount: float
    subtotal_with_margin: float
    manual_discount: float
    volume_discount: float
    effective_discount: float
    discount_source: DiscountSource
    discount_amount: float
    final_price: float
    price_per_hour: float

    employee_count: int
    employee_breakdown: tuple[EmployeeCost, ...]

    seller_commission: float
    management_commission: float
    total_commission: float
    real_net_profit: float
    loss_flag: bool

    incomplete: bool = False
    defaulted_fields: tuple[str, ...] = ()

    @property
    def margin_percent(self) -> float:
        return self.margin * 100.0

    @property
    def discount_percent(self) -> float:
        return self.effective_discount * 100.0

    @property
    def variable_cost(self) -> float:
        return self.labor_total + self.transit_total + self.ride_total + self.meal_total

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["shift"] = self.shift.value
        payload["duration_unit"] = self.duration_unit.value
        payload["discount_source"] = self.discount_source.value
        payload["selected_weekdays"] = list(self.selected_weekdays)
        payload["employee_breakdown"] = [asdict(item) for item in self.employee_breakdown]
        payload["defaulted_fields"] = list(self.defaulted_fields)
        payload["margin_percent"] = self.margin_percent
        payload["discount_percent"] = self.discount_percent
        return payload


@dataclass(frozen=True)
class RiskClassification:
    level: RiskLevel
    variable_cost_ratio: float
    forced: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "variable_cost_ratio": self.variable_cost_ratio,
            "forced": self.forced,
        }


@dataclass(frozen=True)
class ViabilityAnalysis:
    net_margin_percent: float
    fixed_cost: float
    variable_cost: float
    contribution_margin: float
    contribution_margin_percent: float
    break_even_price: float
    below_break_even: bool
    weekend_staffing_shortfall: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HistoricalRecord:
    """Frozen snapshot of one quote as persisted in the calculation history."""

    record_id: int
    created_at: datetime
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
    risk_level: RiskLevel
    client_name: str = ""
    client_contact: str = ""
    converted: bool = False
    event_date: Optional[str] = None
    lead_time_days: Optional[int] = None
    predominant_shift: Optional[Shift] = None

    @property
    def price_per_hour(self) -> float:
        return self.final_price / self.total_hours if self.total_hours > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        payload["risk_level"] = self.risk_level.value
        payload["predominant_shift"] = (
            self.predominant_shift.value if self.predominant_shift is not None else None
        )
        payload["price_per_hour"] = self.price_per_hour
        return payload


@dataclass(frozen=True)
class AnalyticsKpis:
    total_revenue: float = 0.0
    confirmed_revenue: float = 0.0
    average_net_margin: float = 0.0
    average_ticket: float = 0.0


@dataclass(frozen=True)
class UnitAnalytics:
    revenue: float
    variable_cost: float
    fixed_cost: float
    contribution_margin: float
    count: int


@dataclass(frozen=True)
class MonthlyAnalytics:
    month: str
    revenue: float
    costs: float
    net_margin: float
    net_margin_percent: float
    count: int


@dataclass(frozen=True)
class AnalyticsSummary:
    kpis: AnalyticsKpis = field(default_factory=AnalyticsKpis)
    by_unit: dict[str, UnitAnalytics] = field(default_factory=dict)
    monthly: list[MonthlyAnalytics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kpis": asdict(self.kpis),
            "by_unit": {unit: asdict(values) for unit, values in self.by_unit.items()},
            "monthly": [asdict(point) for point in self.monthly],
        }


@dataclass(frozen=True)
class RenewalOpportunity:
    record_id: int
    client_name: str
    client_contact: str
    space: str
    quoted_at: str
    months_ago: int
    previous_value: float
    converted: bool
