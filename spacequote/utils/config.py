"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return Path(value.strip())


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    log_file: Optional[Path]
    database_path: Path
    api_host: str
    api_port: int
    api_reload: bool

    days_per_month: int
    default_duration: int
    max_duration_days: int
    default_hours_per_day: float
    default_weekday: int

    volume_discount_long_days: int
    volume_discount_long_rate: float
    volume_discount_short_days: int
    volume_discount_short_rate: float

    risk_high_threshold: float
    risk_medium_threshold: float

    default_commission_enabled: bool
    default_seller_commission_rate: float
    default_management_commission_rate: float

    weekend_min_staff: int
    history_max_records: int
    analytics_window_months: int
    analytics_series_months: int
    fixed_cost_estimate_ratio: float
    renewal_min_months: int
    renewal_max_months: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests override via dataclasses.replace."""
    return Settings(
        app_name=_env_str("SPACEQUOTE_APP_NAME", "SpaceQuote Budget Engine"),
        app_version=_env_str("SPACEQUOTE_APP_VERSION", "1.0.0"),
        log_level=_env_str("SPACEQUOTE_LOG_LEVEL", "INFO"),
        log_file=_env_path("SPACEQUOTE_LOG_FILE"),
        database_path=Path(_env_str("SPACEQUOTE_DATABASE_PATH", "data/spacequote.db")),
        api_host=_env_str("SPACEQUOTE_HOST", "127.0.0.1"),
        api_port=_env_int("SPACEQUOTE_PORT", 8000),
        api_reload=_env_bool("SPACEQUOTE_RELOAD", False),
        days_per_month=_env_int("SPACEQUOTE_DAYS_PER_MONTH", 30),
        default_duration=1,
        max_duration_days=_env_int("SPACEQUOTE_MAX_DURATION_DAYS", 3650),
        default_hours_per_day=_env_float("SPACEQUOTE_DEFAULT_HOURS_PER_DAY", 8.0),
        default_weekday=1,
        volume_discount_long_days=7,
        volume_discount_long_rate=_env_float("SPACEQUOTE_VOLUME_DISCOUNT_LONG", 0.10),
        volume_discount_short_days=3,
        volume_discount_short_rate=_env_float("SPACEQUOTE_VOLUME_DISCOUNT_SHORT", 0.05),
        risk_high_threshold=_env_float("SPACEQUOTE_RISK_HIGH_THRESHOLD", 60.0),
        risk_medium_threshold=_env_float("SPACEQUOTE_RISK_MEDIUM_THRESHOLD", 40.0),
        default_commission_enabled=_env_bool("SPACEQUOTE_COMMISSION_ENABLED", True),
        default_seller_commission_rate=_env_float("SPACEQUOTE_SELLER_COMMISSION", 0.08),
        default_management_commission_rate=_env_float(
            "SPACEQUOTE_MANAGEMENT_COMMISSION", 0.02
        ),
        weekend_min_staff=_env_int("SPACEQUOTE_WEEKEND_MIN_STAFF", 3),
        history_max_records=_env_int("SPACEQUOTE_HISTORY_MAX_RECORDS", 500),
        analytics_window_months=12,
        analytics_series_months=6,
        fixed_cost_estimate_ratio=0.30,
        renewal_min_months=11,
        renewal_max_months=12,
    )
