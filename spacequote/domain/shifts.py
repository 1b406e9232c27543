"""Shift label resolution and schedule-window arithmetic."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional

from spacequote.domain.models import ScheduleWindow, Shift
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)


_SHIFT_ALIASES: dict[str, Shift] = {
    "morning": Shift.MORNING,
    "manha": Shift.MORNING,
    "afternoon": Shift.AFTERNOON,
    "tarde": Shift.AFTERNOON,
    "evening": Shift.EVENING,
    "night": Shift.EVENING,
    "noite": Shift.EVENING,
    "full-day": Shift.FULL_DAY,
    "fullday": Shift.FULL_DAY,
    "all-day": Shift.FULL_DAY,
    "integral": Shift.FULL_DAY,
}

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def normalize_shift_label(label: Optional[str]) -> str:
    """Lower-case, strip diacritics and collapse separators to hyphens."""
    if not label:
        return ""
    decomposed = unicodedata.normalize("NFKD", label.strip().lower())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return re.sub(r"[\s_]+", "-", stripped)


def resolve_shift(label: Optional[str]) -> Shift:
    """Map a free-form shift label to a Shift; unknown or empty means morning."""
    return _SHIFT_ALIASES.get(normalize_shift_label(label), Shift.MORNING)


def parse_time_to_minutes(value: str) -> Optional[int]:
    match = _TIME_PATTERN.match(value.strip()) if value else None
    if match is None:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def window_hours(window: ScheduleWindow) -> float:
    """Length of a window in hours; malformed or inverted windows count as 0."""
    start = parse_time_to_minutes(window.start)
    end = parse_time_to_minutes(window.end)
    if start is None or end is None or end <= start:
        return 0.0
    return (end - start) / 60.0


def is_valid_window(window: ScheduleWindow) -> bool:
    return window_hours(window) > 0.0


def total_hours_per_day(windows: Iterable[ScheduleWindow]) -> float:
    total = 0.0
    for window in windows:
        hours = window_hours(window)
        if hours <= 0.0:
            logger.warning(
                "Ignoring invalid schedule window | start=%s | end=%s",
                window.start,
                window.end,
            )
            continue
        total += hours
    return total


def infer_predominant_shift(windows: Iterable[ScheduleWindow]) -> Optional[Shift]:
    """Classify each window by its midpoint and return the shift with most hours.

    Midpoints in [06:00, 12:00) are morning, [12:00, 18:00) afternoon, anything
    else evening. Ties resolve morning, then afternoon, then evening.
    """
    hours_by_shift = {Shift.MORNING: 0.0, Shift.AFTERNOON: 0.0, Shift.EVENING: 0.0}
    seen_window = False
    for window in windows:
        hours = window_hours(window)
        if hours <= 0.0:
            continue
        seen_window = True
        start = parse_time_to_minutes(window.start) or 0
        midpoint_hour = start / 60.0 + hours / 2.0
        if 6.0 <= midpoint_hour < 12.0:
            hours_by_shift[Shift.MORNING] += hours
        elif 12.0 <= midpoint_hour < 18.0:
            hours_by_shift[Shift.AFTERNOON] += hours
        else:
            hours_by_shift[Shift.EVENING] += hours

    if not seen_window:
        return None
    best_hours = max(hours_by_shift.values())
    for shift in (Shift.MORNING, Shift.AFTERNOON, Shift.EVENING):
        if hours_by_shift[shift] == best_hours:
            return shift
    return Shift.EVENING
