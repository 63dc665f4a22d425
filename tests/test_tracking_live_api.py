from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import config
from core.timers import ManualScheduler
from tracking.api.live import build_driving_session, get_driving_session, router
from tracking.services.session import DrivingSession
from tracking.services.speed_limit import HttpSpeedLimitFetcher


@pytest.fixture
def session(scheduler: ManualScheduler, feedback) -> DrivingSession:
    return DrivingSession(scheduler, feedback)


@pytest.fixture
def client(session: DrivingSession):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_driving_session] = lambda: session
    with TestClient(app) as client:
        yield client


def _position(scheduler: ManualScheduler, speed: float, **extra) -> dict:
    scheduler.advance(1000)
    return {
        "latitude": 32.0,
        "longitude": -97.0,
        "speed": speed,
        "timestamp": scheduler.now_ms(),
        **extra,
    }


def test_start_and_state(client: TestClient) -> None:
    response = client.post("/api/drive/start")
    assert response.status_code == 200
    assert response.json()["motion"]["isTracking"] is True

    state = client.get("/api/drive/state").json()
    assert state["status"] == "success"
    assert state["isRecording"] is True
    assert state["alarm"]["tier"] == "none"


def test_start_without_position_source_is_rejected(client: TestClient) -> None:
    response = client.post("/api/drive/start", json={"source_available": False})
    assert response.status_code == 400
    assert response.json()["detail"] == "Geolocation is not supported by this device"


def test_position_before_start_conflicts(client, scheduler) -> None:
    response = client.post("/api/drive/position", json=_position(scheduler, 10.0))
    assert response.status_code == 409


def test_invalid_position_is_rejected(client, scheduler) -> None:
    client.post("/api/drive/start")
    response = client.post(
        "/api/drive/position",
        json=_position(scheduler, 10.0, latitude=95.0),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid position sample"


def test_speeding_raises_alarm(client, scheduler) -> None:
    client.post("/api/drive/start")
    limit = client.post("/api/drive/speed-limit", json={"speedLimit": 50})
    assert limit.status_code == 200
    assert limit.json()["speedLimit"] == 50.0

    response = client.post("/api/drive/position", json=_position(scheduler, 20.0))
    payload = response.json()
    assert response.status_code == 200
    assert payload["motion"]["speed"] == pytest.approx(72.0)
    assert payload["overLimitBy"] == pytest.approx(22.0)
    assert payload["alarm"]["tier"] == "aggressive"


def test_mute_and_announcement_toggles(client: TestClient) -> None:
    muted = client.post("/api/drive/mute").json()
    assert muted["alarm"]["isMuted"] is True

    unmuted = client.post("/api/drive/mute", json={"enabled": False}).json()
    assert unmuted["alarm"]["isMuted"] is False

    zone = client.post("/api/drive/announcements", json={"enabled": False}).json()
    assert zone["zone"]["isAnnouncementEnabled"] is False


def test_break_dismiss(client: TestClient, session: DrivingSession) -> None:
    client.post("/api/drive/start")
    response = client.post("/api/drive/break/dismiss")
    assert response.status_code == 200
    assert response.json()["breakReminder"]["breaksDismissed"] == 1


def test_stop_produces_trip_record(client, scheduler) -> None:
    client.post("/api/drive/start")
    client.post("/api/drive/speed-limit", json={"speedLimit": 50})
    client.post("/api/drive/position", json=_position(scheduler, 20.0))
    client.post("/api/drive/position", json=_position(scheduler, 10.0))

    eco = client.get("/api/drive/eco")
    assert eco.status_code == 200
    assert "eco_score" in eco.json()["eco"]

    stopped = client.post("/api/drive/stop").json()
    assert len(stopped["trip"]["speeding_incidents"]) == 1
    assert stopped["trip"]["eco"] is not None

    trip = client.get("/api/drive/trip")
    assert trip.status_code == 200
    assert trip.json()["trip"]["worst_overspeed"] == pytest.approx(22.0)

    assert client.delete("/api/drive/trip").status_code == 200
    missing = client.get("/api/drive/trip")
    assert missing.status_code == 404


def test_position_error_reports_reason(client: TestClient) -> None:
    client.post("/api/drive/start")

    bad = client.post("/api/drive/position-error", json={"reason": "gremlins"})
    assert bad.status_code == 400

    response = client.post(
        "/api/drive/position-error",
        json={"reason": "permission_denied"},
    )
    motion = response.json()["motion"]
    assert motion["isTracking"] is False
    assert motion["error"].startswith("Location permission denied")


def test_hands_free_toggle(client: TestClient) -> None:
    response = client.post("/api/drive/hands-free", json={"enabled": True})
    assert response.json()["handsFree"] is True


def test_build_session_without_lookup_service(monkeypatch) -> None:
    monkeypatch.setattr(config, "SPEED_LIMIT_SERVICE_URL", "")
    session = build_driving_session()
    assert session.speed_limit_monitor is None


def test_build_session_uses_configured_lookup_service(monkeypatch) -> None:
    monkeypatch.setenv("SPEED_LIMIT_SERVICE_URL", "http://limits.local/lookup")
    session = build_driving_session()
    fetcher = session.speed_limit_monitor.fetcher
    assert isinstance(fetcher, HttpSpeedLimitFetcher)
    assert fetcher.base_url == "http://limits.local/lookup"


def test_build_session_rejects_malformed_lookup_url(monkeypatch) -> None:
    monkeypatch.setenv("SPEED_LIMIT_SERVICE_URL", "foo")
    with pytest.raises(RuntimeError):
        build_driving_session()
