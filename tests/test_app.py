# tests/test_app.py
from datetime import date

import pytest
import requests

import backend.app as app_module
from backend.lib.eco_village_core.errors import NotAuthenticatedError
from backend.lib.emporia_source import EmporiaDataSource
from backend.lib.session import DashboardSession
from backend.lib.simulation_source import SimulationDataSource
from conftest import FakeVue


class StubGenerator:
    def generate(self, prompt):
        return "Use less power."


@pytest.fixture
def vue():
    return FakeVue()


@pytest.fixture
def client(monkeypatch, vue):
    session = DashboardSession(
        sources={
            "emporia": lambda: EmporiaDataSource(client_factory=lambda: vue),
            "simulation": lambda: SimulationDataSource(today=date(2024, 3, 31)),
        },
        default_source="emporia",
        history_days=30,
    )
    monkeypatch.setattr(app_module, "dashboard", session)
    monkeypatch.setattr(app_module, "USE_BEDROCK", False)
    monkeypatch.setattr(app_module, "bedrock_service", None)
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c


def login_demo(client):
    resp = client.post("/login", json={"email": "demo@example.com", "demo": True})
    assert resp.status_code == 200
    return resp.get_json()


def test_data_requires_login(client):
    for path in ("/dwellings", "/residents", "/usage/daily", "/usage/totals", "/export"):
        assert client.get(path).status_code == 401
    assert client.post("/insights").status_code == 401


def test_demo_login(client):
    body = login_demo(client)
    assert body == {"source": "simulation", "residents": 20, "dwellings": 12, "records": 620}

    status = client.get("/status").get_json()
    assert status["authenticated"] is True
    assert status["records"] == 620


def test_login_requires_credentials(client):
    resp = client.post("/login", json={"email": "me@example.com"})
    assert resp.status_code == 400


def test_login_rejected(client, vue):
    vue.login_result = False
    resp = client.post("/login", json={"email": "me@example.com", "password": "bad"})
    assert resp.status_code == 401
    assert client.get("/status").get_json()["authenticated"] is False


def test_login_unreachable_suggests_demo(client, vue):
    vue.login_error = requests.exceptions.ConnectionError("blocked")
    resp = client.post("/login", json={"email": "me@example.com", "password": "pw"})
    assert resp.status_code == 502
    body = resp.get_json()
    assert body["suggest_demo"] is True
    assert "demo mode" in body["error"]


def test_daily_and_totals(client):
    login_demo(client)
    daily = client.get("/usage/daily").get_json()["data"]
    assert len(daily) == 31
    assert daily[0]["date"] == "2024-03-01"
    assert len(daily[0]["usage"]) == 20

    totals = client.get("/usage/totals").get_json()["data"]
    assert len(totals) == 20
    values = [t["total"] for t in totals]
    assert values == sorted(values, reverse=True)


def test_dwelling_filter(client):
    login_demo(client)
    daily = client.get("/usage/daily?dwelling_id=d1").get_json()["data"]
    assert set(daily[0]["usage"]) == {"r1", "r2"}

    residents = client.get("/residents?dwelling_id=d12").get_json()["residents"]
    assert [r["id"] for r in residents] == ["r17", "r18", "r19", "r20"]

    assert client.get("/usage/totals?dwelling_id=nope").get_json()["data"] == []
    assert client.get("/usage/daily?dwelling_id=nope").get_json()["data"] == []


def test_monthly_breakdown_overview(client):
    login_demo(client)
    monthly = client.get("/usage/monthly").get_json()["data"]
    assert [m["month"] for m in monthly] == ["2024-03"]

    rows = client.get("/usage/breakdown").get_json()["data"]
    assert len(rows) == 20
    assert rows[0]["efficiency"] in {"High", "Moderate", "Efficient"}

    summary = client.get("/usage/overview?dwelling_id=d1").get_json()
    assert summary["active_meters"] == 2
    assert summary["highest_user"] in {"Kyle (You)", "Sarah"}


def test_export_csv(client):
    login_demo(client)
    resp = client.get("/export?dwelling_id=d1")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "eco_village_usage.csv" in resp.headers["Content-Disposition"]

    lines = resp.get_data(as_text=True).split("\n")
    assert lines[0] == "Date,Resident,Dwelling,kWh"
    assert len(lines) == 31 * 2 + 1
    assert lines[1].split(",")[2] == "Sunrise Yurt"


def test_insights_fallback_when_disabled(client):
    login_demo(client)
    resp = client.post("/insights")
    assert resp.status_code == 200
    assert resp.get_json()["insight"].startswith("Sorry")


def test_insights_with_generator(client, monkeypatch):
    monkeypatch.setattr(app_module, "USE_BEDROCK", True)
    monkeypatch.setattr(app_module, "bedrock_service", StubGenerator())
    login_demo(client)
    assert client.post("/insights").get_json()["insight"] == "Use less power."


def test_logout(client):
    login_demo(client)
    assert client.post("/logout").status_code == 200
    assert client.get("/status").get_json()["authenticated"] is False
    assert client.get("/usage/daily").status_code == 401


def test_demo_string_false_is_not_demo(client):
    resp = client.post("/login", json={"email": "me@example.com", "password": "", "demo": "false"})
    assert resp.status_code == 400
    assert client.get("/status").get_json()["authenticated"] is False


def test_status_when_session_cleared_mid_request(client, monkeypatch):
    login_demo(client)

    def cleared():
        raise NotAuthenticatedError("logged out")

    monkeypatch.setattr(app_module.dashboard, "data", cleared)
    resp = client.get("/status")
    assert resp.status_code == 200
    assert resp.get_json()["authenticated"] is False
