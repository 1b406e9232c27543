#!/usr/bin/env python3
"""Validate local SpaceQuote environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from importlib.metadata import version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spacequote.domain.models import CalculationParameters
from spacequote.repository.data_repository import DEFAULT_ROOMS, DataRepository
from spacequote.services.budget_service import BudgetCalculationService
from spacequote.services.risk_service import classify_risk
from spacequote.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="spacequote-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "spacequote_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Default catalog seeding
        try:
            repository.seed_default_catalog()
            room_count = len(repository.list_rooms())
            if room_count != len(DEFAULT_ROOMS):
                raise RuntimeError(f"expected {len(DEFAULT_ROOMS)} rooms, got {room_count}")
            ok, line = _print_result("Default catalog", True, f": {room_count} rooms")
        except Exception as exc:
            ok, line = _print_result("Default catalog", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Smoke quote
        try:
            service = BudgetCalculationService(
                data_source=repository,
                settings=validation_settings,
            )
            result = service.calculate(
                CalculationParameters(
                    room=repository.get_room(1),
                    duration=1,
                    duration_unit="months",
                    selected_weekdays=(1, 2, 3, 4, 5),
                    hours_per_day=8,
                    margin=0.2,
                )
            )
            risk = classify_risk(result, settings=validation_settings)
            if result.final_price <= 0:
                raise RuntimeError("smoke quote produced a non-positive price")
            ok, line = _print_result(
                "Smoke quote",
                True,
                f": final={result.final_price:.2f} risk={risk.level.value}",
            )
        except Exception as exc:
            ok, line = _print_result("Smoke quote", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" SpaceQuote Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
