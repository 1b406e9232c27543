from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import create_app
from spacequote.controllers.quote_controller import router as quote_router
from spacequote.services.history_service import HISTORY_CSV_COLUMNS
from spacequote.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(base, database_path=tmp_path / filename)


@pytest.fixture
def client(tmp_path):
    app = create_app(_build_test_settings(tmp_path, "api.db"))
    with TestClient(app) as test_client:
        yield test_client


def _quote_payload(**overrides) -> dict:
    payload = {
        "room_id": 3,
        "duration": 5,
        "duration_unit": "days",
        "selected_weekdays": [1, 2, 3, 4, 5],
        "hours_per_day": 8,
        "margin": 0.25,
        "discount": 0.0,
        "client_name": "Acme Eventos",
        "client_contact": "contato@acme.test",
        "event_date": "2099-12-01",
    }
    payload.update(overrides)
    return payload


def test_health_and_catalog_endpoints(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}

    rooms = client.get("/rooms").json()
    assert len(rooms) == 10
    assert rooms[2]["name"] == "Sala 2"
    assert rooms[2]["morning_cost"] is None

    assert len(client.get("/extras").json()) == 5
    employees = client.get("/employees").json()
    assert employees[0]["active"] is True


def test_calculate_returns_priced_quote_and_history_id(client) -> None:
    response = client.post("/calculate", json=_quote_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["history_id"] is not None
    assert body["result"]["room_name"] == "Sala 2"
    assert body["result"]["final_price"] > body["result"]["subtotal"]
    assert body["result"]["defaulted_fields"] == []
    assert body["risk"]["level"] in {"LOW", "MEDIUM", "HIGH"}
    assert body["viability"]["weekend_staffing_shortfall"] is False


def test_calculate_reports_defaulted_fields(client) -> None:
    response = client.post("/calculate", json={"room_id": 1, "save_history": False})

    assert response.status_code == 200
    body = response.json()
    assert body["history_id"] is None
    assert "duration" in body["result"]["defaulted_fields"]
    assert "margin" in body["result"]["defaulted_fields"]
    assert body["result"]["duration_unit"] == "months"


def test_calculate_without_room_is_high_risk(client) -> None:
    body = client.post("/calculate", json=_quote_payload(room_id=None)).json()

    assert body["result"]["incomplete"] is True
    assert body["result"]["base_cost"] == 0.0
    assert body["risk"]["level"] == "HIGH"


@pytest.mark.parametrize(
    "overrides",
    [
        {"selected_weekdays": [7]},
        {"duration_unit": "weeks"},
        {"margin": 1.5},
        {"schedules": [{"start": "25:00", "end": "26:00"}]},
        {"event_date": "soon"},
        {"duration": 3651},
        {"duration": 10**400},
    ],
)
def test_calculate_rejects_malformed_payloads(client, overrides) -> None:
    response = client.post("/calculate", json=_quote_payload(**overrides))

    assert response.status_code == 422


def test_history_conversion_and_analytics_flow(client) -> None:
    quote = client.post("/calculate", json=_quote_payload()).json()
    record_id = quote["history_id"]

    history = client.get("/history").json()
    assert [item["record_id"] for item in history] == [record_id]
    assert history[0]["client_name"] == "Acme Eventos"
    assert history[0]["converted"] is False

    converted = client.post(f"/history/{record_id}/conversion", json={"converted": True})
    assert converted.status_code == 200
    assert converted.json()["converted"] is True

    missing = client.post(f"/history/{record_id + 100}/conversion", json={"converted": True})
    assert missing.status_code == 404

    analytics = client.get("/analytics").json()
    assert analytics["kpis"]["confirmed_revenue"] == pytest.approx(quote["result"]["final_price"])
    assert analytics["by_unit"]["UTV"]["count"] == 1
    assert len(analytics["monthly"]) == 1

    assert client.get("/renewals").json() == []


def test_history_limit_is_validated(client) -> None:
    assert client.get("/history", params={"limit": 0}).status_code == 422


def test_history_export_is_csv_attachment(client) -> None:
    client.post("/calculate", json=_quote_payload())

    response = client.get("/history/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "quote_history.csv" in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0] == ",".join(HISTORY_CSV_COLUMNS)
    assert len(lines) == 2

    dataset = client.get("/history/export/ml")
    assert dataset.status_code == 200
    assert dataset.text.startswith("TARGET_CONVERTED,")


def test_routes_report_unavailable_services_without_wiring() -> None:
    bare_app = FastAPI()
    bare_app.include_router(quote_router)

    response = TestClient(bare_app).get("/rooms")

    assert response.status_code == 503
    assert response.json()["detail"] == "Repository is not initialized"
