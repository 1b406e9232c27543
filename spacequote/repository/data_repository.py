"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from spacequote.domain.models import (
    CommissionConfig,
    Employee,
    Extra,
    HistoricalRecord,
    RiskLevel,
    Room,
    Shift,
    ShiftMultipliers,
)
from spacequote.utils.config import Settings, get_settings
from spacequote.utils.logger import get_logger


logger = get_logger(__name__)


DEFAULT_ROOMS: tuple[Room, ...] = (
    Room(1, "Auditório", "DJLM", 132.72, capacity=120, area=108.0),
    Room(2, "Auditório", "UTV", 77.60, capacity=70, area=63.0),
    Room(3, "Sala 2", "UTV", 35.69, capacity=30, area=27.0),
    Room(4, "Sala 3", "UTV", 55.19, capacity=50, area=45.0),
    Room(5, "Sala 4", "UTV", 43.92, capacity=40, area=36.0),
    Room(6, "Sala 7", "UTV", 29.53, capacity=26, area=25.0),
    Room(7, "Sala 8", "UTV", 17.74, capacity=16, area=14.4),
    Room(8, "Sala 9", "UTV", 30.52, capacity=28, area=25.0),
    Room(9, "Sala 12", "UTV", 10.02, capacity=9, area=8.1),
    Room(10, "Sala 13", "UTV", 8.86, capacity=8, area=7.2),
)

DEFAULT_EXTRAS: tuple[Extra, ...] = (
    Extra(1, "Coffee Break Premium", 50.00),
    Extra(2, "Serviço de Impressão", 15.00),
    Extra(3, "Gravação Profissional", 80.00),
    Extra(4, "Transmissão ao Vivo", 120.00),
    Extra(5, "Flip Chart Extra", 5.00),
)

DEFAULT_EMPLOYEES: tuple[Employee, ...] = (
    Employee(
        employee_id=1,
        name="Funcionário Padrão",
        rate_normal=13.04,
        rate_ot50=19.56,
        rate_ot100=26.08,
        transit_rate=12.00,
        ride_rate=0.00,
        meal_rate=0.00,
        active=True,
    ),
)


def _optional_float(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)


def _to_utc_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DataRepository:
    """Encapsulates SQLite access so pricing logic stays storage-agnostic.

    Also serves as the engine's pricing data source: ``active_employees``,
    ``extras``, ``shift_multipliers`` and ``commission_rates`` read straight
    from the master-data tables.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        unit TEXT NOT NULL,
                        capacity INTEGER NOT NULL DEFAULT 0 CHECK (capacity >= 0),
                        area REAL NOT NULL DEFAULT 0,
                        base_cost REAL NOT NULL DEFAULT 0 CHECK (base_cost >= 0),
                        morning_cost REAL,
                        afternoon_cost REAL,
                        evening_cost REAL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Employees (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        rate_normal REAL NOT NULL DEFAULT 0,
                        rate_ot50 REAL NOT NULL DEFAULT 0,
                        rate_ot100 REAL NOT NULL DEFAULT 0,
                        transit_rate REAL NOT NULL DEFAULT 0,
                        ride_rate REAL NOT NULL DEFAULT 0,
                        meal_rate REAL NOT NULL DEFAULT 0,
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0,1))
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Extras (
                        id INTEGER PRIMARY KEY,
                        name TEXT NOT NULL,
                        cost_per_hour REAL NOT NULL DEFAULT 0
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS PricingSettings (
                        key TEXT PRIMARY KEY,
                        value REAL NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS CalculationHistory (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        created_at TEXT NOT NULL,
                        room_id INTEGER NOT NULL,
                        room_name TEXT NOT NULL,
                        unit TEXT NOT NULL,
                        duration INTEGER NOT NULL,
                        duration_unit TEXT NOT NULL,
                        total_hours REAL NOT NULL,
                        subtotal REAL NOT NULL,
                        margin_amount REAL NOT NULL,
                        discount_amount REAL NOT NULL,
                        discount_percent REAL NOT NULL,
                        final_price REAL NOT NULL,
                        base_cost REAL NOT NULL,
                        net_margin_percent REAL NOT NULL,
                        risk_level TEXT NOT NULL,
                        client_name TEXT NOT NULL DEFAULT '',
                        client_contact TEXT NOT NULL DEFAULT '',
                        converted INTEGER NOT NULL DEFAULT 0 CHECK (converted IN (0,1)),
                        event_date TEXT,
                        lead_time_days INTEGER,
                        predominant_shift TEXT
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_history_created_at
                    ON CalculationHistory(created_at);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_default_catalog(self) -> None:
        """Seed the default rooms, staff, extras and pricing settings when empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) AS count FROM Rooms;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Catalog already present; skipping seed")
                    return

                cursor.executemany(
                    """
                    INSERT INTO Rooms (
                        id, name, unit, capacity, area, base_cost,
                        morning_cost, afternoon_cost, evening_cost
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    [self._room_row(room) for room in DEFAULT_ROOMS],
                )
                cursor.executemany(
                    """
                    INSERT INTO Employees (
                        id, name, rate_normal, rate_ot50, rate_ot100,
                        transit_rate, ride_rate, meal_rate, active
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    [self._employee_row(employee) for employee in DEFAULT_EMPLOYEES],
                )
                cursor.executemany(
                    "INSERT INTO Extras (id, name, cost_per_hour) VALUES (?, ?, ?);",
                    [(extra.extra_id, extra.name, extra.cost_per_hour) for extra in DEFAULT_EXTRAS],
                )
                multipliers = ShiftMultipliers()
                cursor.executemany(
                    "INSERT OR IGNORE INTO PricingSettings (key, value) VALUES (?, ?);",
                    [
                        ("multiplier_morning", multipliers.morning),
                        ("multiplier_afternoon", multipliers.afternoon),
                        ("multiplier_evening", multipliers.evening),
                        (
                            "commission_enabled",
                            1.0 if self._settings.default_commission_enabled else 0.0,
                        ),
                        ("commission_seller_rate", self._settings.default_seller_commission_rate),
                        (
                            "commission_management_rate",
                            self._settings.default_management_commission_rate,
                        ),
                    ],
                )
                conn.commit()
            logger.info(
                "Default catalog seeded | rooms=%s | employees=%s | extras=%s",
                len(DEFAULT_ROOMS),
                len(DEFAULT_EMPLOYEES),
                len(DEFAULT_EXTRAS),
            )
        except sqlite3.Error as exc:
            raise RuntimeError(f"Catalog seeding failed: {exc}") from exc

    @staticmethod
    def _room_row(room: Room) -> tuple:
        return (
            room.room_id,
            room.name,
            room.unit,
            room.capacity,
            room.area,
            room.base_cost,
            room.morning_cost,
            room.afternoon_cost,
            room.evening_cost,
        )

    @staticmethod
    def _employee_row(employee: Employee) -> tuple:
        return (
            employee.employee_id,
            employee.name,
            employee.rate_normal,
            employee.rate_ot50,
            employee.rate_ot100,
            employee.transit_rate,
            employee.ride_rate,
            employee.meal_rate,
            1 if employee.active else 0,
        )

    @staticmethod
    def _row_to_room(row: sqlite3.Row) -> Room:
        return Room(
            room_id=int(row["id"]),
            name=str(row["name"]),
            unit=str(row["unit"]),
            base_cost=float(row["base_cost"]),
            capacity=int(row["capacity"]),
            area=float(row["area"]),
            morning_cost=_optional_float(row["morning_cost"]),
            afternoon_cost=_optional_float(row["afternoon_cost"]),
            evening_cost=_optional_float(row["evening_cost"]),
        )

    @staticmethod
    def _row_to_employee(row: sqlite3.Row) -> Employee:
        return Employee(
            employee_id=int(row["id"]),
            name=str(row["name"]),
            rate_normal=float(row["rate_normal"]),
            rate_ot50=float(row["rate_ot50"]),
            rate_ot100=float(row["rate_ot100"]),
            transit_rate=float(row["transit_rate"]),
            ride_rate=float(row["ride_rate"]),
            meal_rate=float(row["meal_rate"]),
            active=bool(row["active"]),
        )

    @staticmethod
    def _row_to_history(row: sqlite3.Row) -> HistoricalRecord:
        shift = row["predominant_shift"]
        return HistoricalRecord(
            record_id=int(row["id"]),
            created_at=_parse_timestamp(str(row["created_at"])),
            room_id=int(row["room_id"]),
            room_name=str(row["room_name"]),
            unit=str(row["unit"]),
            duration=int(row["duration"]),
            duration_unit=str(row["duration_unit"]),
            total_hours=float(row["total_hours"]),
            subtotal=float(row["subtotal"]),
            margin_amount=float(row["margin_amount"]),
            discount_amount=float(row["discount_amount"]),
            discount_percent=float(row["discount_percent"]),
            final_price=float(row["final_price"]),
            base_cost=float(row["base_cost"]),
            net_margin_percent=float(row["net_margin_percent"]),
            risk_level=RiskLevel(str(row["risk_level"])),
            client_name=str(row["client_name"]),
            client_contact=str(row["client_contact"]),
            converted=bool(row["converted"]),
            event_date=row["event_date"],
            lead_time_days=(
                int(row["lead_time_days"]) if row["lead_time_days"] is not None else None
            ),
            predominant_shift=Shift(shift) if shift else None,
        )

    def list_rooms(self) -> list[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Rooms ORDER BY id ASC;")
            return [self._row_to_room(row) for row in cursor.fetchall()]

    def get_room(self, room_id: int) -> Optional[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Rooms WHERE id = ?;", (room_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_room(row)

    def upsert_room(self, room: Room) -> None:
        """Store a room as given; imported per-shift costs are kept verbatim."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Rooms (
                    id, name, unit, capacity, area, base_cost,
                    morning_cost, afternoon_cost, evening_cost
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    unit = excluded.unit,
                    capacity = excluded.capacity,
                    area = excluded.area,
                    base_cost = excluded.base_cost,
                    morning_cost = excluded.morning_cost,
                    afternoon_cost = excluded.afternoon_cost,
                    evening_cost = excluded.evening_cost;
                """,
                self._room_row(room),
            )
            conn.commit()

    def list_employees(self) -> list[Employee]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Employees ORDER BY id ASC;")
            return [self._row_to_employee(row) for row in cursor.fetchall()]

    def active_employees(self) -> list[Employee]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Employees WHERE active = 1 ORDER BY id ASC;")
            return [self._row_to_employee(row) for row in cursor.fetchall()]

    def upsert_employee(self, employee: Employee) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Employees (
                    id, name, rate_normal, rate_ot50, rate_ot100,
                    transit_rate, ride_rate, meal_rate, active
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    rate_normal = excluded.rate_normal,
                    rate_ot50 = excluded.rate_ot50,
                    rate_ot100 = excluded.rate_ot100,
                    transit_rate = excluded.transit_rate,
                    ride_rate = excluded.ride_rate,
                    meal_rate = excluded.meal_rate,
                    active = excluded.active;
                """,
                self._employee_row(employee),
            )
            conn.commit()

    def extras(self) -> list[Extra]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, name, cost_per_hour FROM Extras ORDER BY id ASC;")
            return [
                Extra(
                    extra_id=int(row["id"]),
                    name=str(row["name"]),
                    cost_per_hour=float(row["cost_per_hour"]),
                )
                for row in cursor.fetchall()
            ]

    def _pricing_settings(self) -> dict[str, float]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value FROM PricingSettings;")
            return {str(row["key"]): float(row["value"]) for row in cursor.fetchall()}

    def _store_pricing_settings(self, values: dict[str, float]) -> None:
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO PricingSettings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                """,
                list(values.items()),
            )
            conn.commit()

    def shift_multipliers(self) -> ShiftMultipliers:
        values = self._pricing_settings()
        defaults = ShiftMultipliers()
        return ShiftMultipliers(
            morning=values.get("multiplier_morning", defaults.morning),
            afternoon=values.get("multiplier_afternoon", defaults.afternoon),
            evening=values.get("multiplier_evening", defaults.evening),
        )

    def update_shift_multipliers(self, multipliers: ShiftMultipliers) -> None:
        self._store_pricing_settings(
            {
                "multiplier_morning": multipliers.morning,
                "multiplier_afternoon": multipliers.afternoon,
                "multiplier_evening": multipliers.evening,
            }
        )

    def commission_rates(self) -> CommissionConfig:
        values = self._pricing_settings()
        return CommissionConfig(
            enabled=bool(
                values.get(
                    "commission_enabled",
                    1.0 if self._settings.default_commission_enabled else 0.0,
                )
            ),
            seller_rate=values.get(
                "commission_seller_rate", self._settings.default_seller_commission_rate
            ),
            management_rate=values.get(
                "commission_management_rate",
                self._settings.default_management_commission_rate,
            ),
        )

    def update_commission_rates(self, config: CommissionConfig) -> None:
        self._store_pricing_settings(
            {
                "commission_enabled": 1.0 if config.enabled else 0.0,
                "commission_seller_rate": config.seller_rate,
                "commission_management_rate": config.management_rate,
            }
        )

    def save_history_record(self, record: HistoricalRecord) -> HistoricalRecord:
        """Append a snapshot and drop everything beyond the newest cap entries."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO CalculationHistory (
                    created_at, room_id, room_name, unit, duration, duration_unit,
                    total_hours, subtotal, margin_amount, discount_amount,
                    discount_percent, final_price, base_cost, net_margin_percent,
                    risk_level, client_name, client_contact, converted,
                    event_date, lead_time_days, predominant_shift
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    _to_utc_iso(record.created_at),
                    record.room_id,
                    record.room_name,
                    record.unit,
                    record.duration,
                    record.duration_unit,
                    record.total_hours,
                    record.subtotal,
                    record.margin_amount,
                    record.discount_amount,
                    record.discount_percent,
                    record.final_price,
                    record.base_cost,
                    record.net_margin_percent,
                    record.risk_level.value,
                    record.client_name,
                    record.client_contact,
                    1 if record.converted else 0,
                    record.event_date,
                    record.lead_time_days,
                    record.predominant_shift.value if record.predominant_shift else None,
                ),
            )
            record_id = int(cursor.lastrowid)
            cursor.execute(
                """
                DELETE FROM CalculationHistory
                WHERE id NOT IN (
                    SELECT id FROM CalculationHistory
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                );
                """,
                (self._settings.history_max_records,),
            )
            trimmed = cursor.rowcount
            conn.commit()

        if trimmed > 0:
            logger.info("History trimmed | removed=%s", trimmed)
        return replace(record, record_id=record_id)

    def list_history(self, limit: Optional[int] = None) -> list[HistoricalRecord]:
        """Newest first."""
        query = "SELECT * FROM CalculationHistory ORDER BY created_at DESC, id DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query + ";", params)
            return [self._row_to_history(row) for row in cursor.fetchall()]

    def get_history_record(self, record_id: int) -> Optional[HistoricalRecord]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM CalculationHistory WHERE id = ?;", (record_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_history(row)

    def set_conversion(self, record_id: int, converted: bool) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE CalculationHistory SET converted = ? WHERE id = ?;",
                (1 if converted else 0, record_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def count_history(self) -> int:
        """Return persisted history count for diagnostics and tests."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM CalculationHistory;")
            return int(cursor.fetchone()["count"])
