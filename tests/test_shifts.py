from __future__ import annotations

import pytest

from spacequote.domain.models import ScheduleWindow, Shift
from spacequote.domain.shifts import (
    infer_predominant_shift,
    is_valid_window,
    normalize_shift_label,
    parse_time_to_minutes,
    resolve_shift,
    total_hours_per_day,
    window_hours,
)


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("morning", Shift.MORNING),
        ("Manhã", Shift.MORNING),
        ("TARDE", Shift.AFTERNOON),
        ("afternoon", Shift.AFTERNOON),
        ("Noite", Shift.EVENING),
        ("night", Shift.EVENING),
        ("Full Day", Shift.FULL_DAY),
        ("integral", Shift.FULL_DAY),
        ("", Shift.MORNING),
        (None, Shift.MORNING),
        ("madrugada", Shift.MORNING),
    ],
)
def test_resolve_shift_labels(label, expected) -> None:
    assert resolve_shift(label) is expected


def test_normalize_shift_label_strips_diacritics_and_separators() -> None:
    assert normalize_shift_label("  Período_Integral ") == "periodo-integral"


def test_parse_time_rejects_malformed_values() -> None:
    assert parse_time_to_minutes("08:30") == 510
    assert parse_time_to_minutes("24:00") is None
    assert parse_time_to_minutes("8h") is None
    assert parse_time_to_minutes("") is None


def test_inverted_or_malformed_windows_count_as_zero_hours() -> None:
    assert window_hours(ScheduleWindow("17:00", "08:00")) == 0.0
    assert window_hours(ScheduleWindow("xx", "10:00")) == 0.0
    assert window_hours(ScheduleWindow("09:15", "10:45")) == pytest.approx(1.5)


def test_total_hours_sums_valid_windows_only() -> None:
    windows = (
        ScheduleWindow("08:00", "12:00"),
        ScheduleWindow("14:00", "18:00"),
        ScheduleWindow("20:00", "19:00"),
    )

    assert total_hours_per_day(windows) == pytest.approx(8.0)


def test_predominant_shift_by_window_midpoint() -> None:
    windows = (
        ScheduleWindow("08:00", "10:00"),
        ScheduleWindow("13:00", "18:00"),
    )

    assert infer_predominant_shift(windows) is Shift.AFTERNOON


def test_predominant_shift_ties_prefer_earlier_shift() -> None:
    windows = (
        ScheduleWindow("19:00", "21:00"),
        ScheduleWindow("13:00", "15:00"),
    )

    assert infer_predominant_shift(windows) is Shift.AFTERNOON


def test_window_spanning_noon_is_classified_by_midpoint() -> None:
    # 08:00-17:00 has its midpoint at 12:30.
    assert infer_predominant_shift((ScheduleWindow("08:00", "17:00"),)) is Shift.AFTERNOON


def test_predominant_shift_is_none_without_valid_windows() -> None:
    assert infer_predominant_shift(()) is None
    assert infer_predominant_shift((ScheduleWindow("10:00", "09:00"),)) is None


def test_is_valid_window_requires_positive_length() -> None:
    assert is_valid_window(ScheduleWindow("08:00", "08:30")) is True
    assert is_valid_window(ScheduleWindow("08:00", "08:00")) is False
    assert is_valid_window(ScheduleWindow("8h", "09:00")) is False
