"""API tests — bearer auth, camelCase contract and the device control endpoints."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
import requests
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.user import User
from app.services.auth_service import create_token
from app.services.device_store import DeviceStateStore
from app.services.smart_office import SmartOffice
from app.services.telemetry_client import TelemetryClient

client = TestClient(app)


@pytest.fixture
def office():
    previous = app.state.office
    office = SmartOffice(
        store=DeviceStateStore(gate_close_delay=60),
        client=TelemetryClient("https://ts.test", None),
        light_controller=MagicMock(set_light=AsyncMock(return_value=True)),
    )
    app.state.office = office
    yield office
    app.state.office = previous


@pytest.fixture
def auth_headers():
    token = create_token(User(id=1, email="ana@office.io"))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override
    settings_rounds = settings.BCRYPT_ROUNDS
    settings.BCRYPT_ROUNDS = 4
    yield
    settings.BCRYPT_ROUNDS = settings_rounds
    app.dependency_overrides.pop(get_db, None)


class TestBearerAuth:
    def test_missing_token(self, office):
        resp = client.get("/api/data/monitoring")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Authentication required"

    def test_invalid_token(self, office):
        resp = client.get("/api/data/monitoring", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Invalid or expired token"

    def test_root_is_open(self):
        assert client.get("/").status_code == 200


class TestMonitoring:
    def test_get_uses_camel_case(self, office, auth_headers):
        resp = client.get("/api/data/monitoring", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["smartLight"] == {"autoMode": True, "lightOn": True, "ldrValue": 450}
        assert body["airQuality"] == {"airQualityIndex": 85, "temperature": 24}
        assert body["airQualityStatus"] == {"label": "Good", "color": "green"}

    def test_manual_light_control(self, office, auth_headers):
        resp = client.post("/api/data/monitoring/light-control",
                           json={"autoMode": False, "lightOn": False}, headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Light state updated"
        assert body["smartLight"]["autoMode"] is False
        assert body["smartLight"]["lightOn"] is False
        office.light_controller.set_light.assert_awaited_with(False)

    def test_light_on_ignored_in_auto_mode(self, office, auth_headers):
        resp = client.post("/api/data/monitoring/light-control", json={"lightOn": False}, headers=auth_headers)
        assert resp.json()["smartLight"]["lightOn"] is True
        office.light_controller.set_light.assert_not_called()


class TestAlerts:
    def test_get(self, office, auth_headers):
        body = client.get("/api/data/alerts", headers=auth_headers).json()
        assert body["alertMode"] is True
        assert body["motionDetected"] is False
        assert [a["id"] for a in body["alertHistory"]] == ["1", "2", "3"]

    def test_toggle_mode(self, office, auth_headers):
        resp = client.post("/api/data/alerts/toggle-mode", json={"alertMode": False}, headers=auth_headers)
        assert resp.json() == {"message": "Security alert mode acknowledged as OFF", "alertMode": False}
        assert office.store.get().alert_mode is False

    def test_toggle_mode_missing_value(self, office, auth_headers):
        resp = client.post("/api/data/alerts/toggle-mode", json={}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid parameter for alertMode"

    def test_toggle_mode_non_boolean(self, office, auth_headers):
        resp = client.post("/api/data/alerts/toggle-mode", json={"alertMode": "yes"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_log_motion_defaults(self, office, auth_headers):
        resp = client.post("/api/data/alerts/log-motion", json={}, headers=auth_headers)
        new_alert = resp.json()["newAlert"]
        assert new_alert["type"] == "Motion Detected"
        assert new_alert["status"] == "Active"
        assert office.store.alerts.latest().id == new_alert["id"]


class TestAccessSafety:
    def test_get(self, office, auth_headers):
        body = client.get("/api/data/access-safety", headers=auth_headers).json()
        assert body["gateOpen"] is False
        assert body["fireSystemOn"] is True
        assert body["fireDetected"] is False
        assert body["attendance"][0]["employeeId"] == "A1234"

    def test_rfid_scan_opens_gate(self, office, auth_headers):
        resp = client.post("/api/data/access-safety/rfid-scan", headers=auth_headers)
        body = resp.json()
        assert body["gateOpen"] is True
        assert body["message"] == f"Access granted for {body['newRecord']['name']}."
        assert len(office.store.attendance) == 4

    def test_fire_system_toggle_and_test(self, office, auth_headers):
        resp = client.post("/api/data/access-safety/fire-system-toggle",
                           json={"fireSystemOn": False}, headers=auth_headers)
        assert resp.json() == {"message": "Fire system set to Inactive", "fireSystemOn": False}

        resp = client.post("/api/data/access-safety/fire-test", headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Fire system is inactive."


class TestAuthApi:
    def test_signup_then_signin(self, db_session):
        resp = client.post("/api/auth/signup", json={"email": "Ana@Office.io", "password": "secret123"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "User created successfully"
        assert body["user"]["email"] == "ana@office.io"
        assert body["token"]

        resp = client.post("/api/auth/signin", json={"email": "ana@office.io", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Login successful"

        # The token opens the data API
        token = resp.json()["token"]
        assert client.get("/api/data/alerts", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_duplicate_signup(self, db_session):
        creds = {"email": "bo@office.io", "password": "secret123"}
        client.post("/api/auth/signup", json=creds)
        resp = client.post("/api/auth/signup", json=creds)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "This email is already in use. Try logging in."

    def test_bad_credentials(self, db_session):
        resp = client.post("/api/auth/signin", json={"email": "ghost@office.io", "password": "secret123"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password."

    def test_weak_password(self, db_session):
        resp = client.post("/api/auth/signup", json={"email": "cy@office.io", "password": "123"})
        assert resp.status_code == 400

    def test_signout(self):
        assert client.post("/api/auth/signout").json() == {"message": "Signout complete."}


@pytest.fixture
def health_db():
    db = MagicMock()

    def override():
        yield db

    app.dependency_overrides[get_db] = override
    yield db
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def online_office():
    previous = app.state.office
    office = SmartOffice(
        store=DeviceStateStore(gate_close_delay=60),
        client=TelemetryClient("https://ts.test", "123456", api_key="READKEY"),
        light_controller=MagicMock(set_light=AsyncMock(return_value=True)),
    )
    app.state.office = office
    yield office
    app.state.office = previous


class TestHealth:
    def test_telemetry_disabled_is_ok(self, office, health_db):
        with patch("app.routers.health.requests.get") as get:
            body = client.get("/api/health").json()
        get.assert_not_called()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["telemetry"] == "disabled"
        assert body["polling"] == []

    def test_channel_reachable(self, online_office, health_db):
        with patch("app.routers.health.requests.get", return_value=MagicMock(status_code=200)) as get:
            body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["telemetry"] == "ok"
        url = get.call_args.args[0]
        assert url == f"https://ts.test/channels/123456/fields/{settings.LDR_FIELD}.json"
        assert get.call_args.kwargs["params"] == {"results": 0, "api_key": "READKEY"}

    def test_channel_unreachable_is_degraded(self, online_office, health_db):
        with patch("app.routers.health.requests.get",
                   side_effect=requests.exceptions.ConnectionError("refused")):
            body = client.get("/api/health").json()
        assert body["telemetry"] == "unreachable"
        assert body["status"] == "degraded"

    def test_channel_http_error_is_degraded(self, online_office, health_db):
        with patch("app.routers.health.requests.get", return_value=MagicMock(status_code=404)):
            body = client.get("/api/health").json()
        assert body["telemetry"] == "http_404"
        assert body["status"] == "degraded"

    def test_database_error_is_degraded(self, office, health_db):
        health_db.execute.side_effect = Exception("database is locked")
        body = client.get("/api/health").json()
        assert body["database"] == "error: database is locked"
        assert body["status"] == "degraded"
