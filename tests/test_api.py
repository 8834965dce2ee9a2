import pytest
from fastapi.testclient import TestClient

from locationdata.core.config import settings
from locationdata.core.reporting import LoggingErrorReporter
from locationdata.main import create_app
from locationdata.models import MemoryKeyValueStore
from locationdata.services import AgentSensor, LocationDataCollector

API = settings.API_V1_PREFIX


@pytest.fixture
def client():
    async def memory_collector(app):
        return LocationDataCollector(
            store=MemoryKeyValueStore(),
            sensor=AgentSensor(),
            reporter=LoggingErrorReporter(),
            user_agent="pytest-agent"
        )

    with TestClient(create_app(collector_factory=memory_collector)) as client:
        yield client


def start_watching(client):
    response = client.patch(f"{API}/settings", json={
        "collectionEnabled": True,
        "collectionMethod": "periodic",
        "enableLocationHistory": True,
    })
    assert response.status_code == 200
    return response


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["tracking"] == "idle"
    assert body["pending_writes"] == 0
    assert body["errors"] == {}


def test_settings_defaults(client):
    response = client.get(f"{API}/settings")

    assert response.status_code == 200
    body = response.json()
    assert body["collectionEnabled"] is False
    assert body["privacyLevel"] == "cityLevel"
    assert body["retentionPeriodDays"] == 30


def test_enabling_collection_starts_watch(client):
    body = start_watching(client).json()
    assert body["collectionEnabled"] is True
    assert body["consentTimestamp"] is not None

    status = client.get(f"{API}/tracking/status").json()
    assert status["is_tracking"] is True
    assert status["state"] == "watching"


def test_invalid_setting_is_rejected(client):
    response = client.patch(f"{API}/settings", json={"accuracyLevel": "extreme"})
    assert response.status_code == 422


def test_agent_ping_reaches_history(client):
    start_watching(client)

    response = client.post(f"{API}/agent/ping", json={"latitude": 37.7749, "longitude": -122.4194, "accuracy": 8})
    assert response.json() == {"accepted": True, "watching": True, "is_tracking": True}

    current = client.get(f"{API}/locations/current").json()["location"]
    assert current["latitude"] == 37.8
    assert current["longitude"] == -122.4

    history = client.get(f"{API}/locations/history").json()
    assert history["total"] == 1


def test_agent_ping_needs_coordinates_or_error(client):
    response = client.post(f"{API}/agent/ping", json={"accuracy": 8})
    assert response.status_code == 422


def test_agent_error_is_reported_in_status(client):
    start_watching(client)
    client.post(f"{API}/agent/ping", json={"error": "position_unavailable", "message": "no fix"})

    status = client.get(f"{API}/tracking/status").json()
    assert status["error"] == "Location information unavailable"
    assert status["state"] == "watching"


def test_refresh_uses_recent_agent_sample(client):
    start_watching(client)
    client.post(f"{API}/agent/ping", json={"latitude": 10.0, "longitude": 20.0})

    body = client.post(f"{API}/locations/current/refresh").json()
    assert body["location"]["latitude"] == 10.0
    assert body["error"] is None
    assert client.get(f"{API}/locations/history").json()["total"] == 1


def test_agent_consent(client):
    response = client.post(f"{API}/agent/consent", json={"permission": "denied"})
    assert response.json() == {"permission": "denied"}


def test_stop_and_visibility(client):
    start_watching(client)

    assert client.post(f"{API}/tracking/visibility", json={"hidden": True}).json()["state"] == "idle"
    assert client.post(f"{API}/tracking/visibility", json={"hidden": False}).json()["state"] == "watching"
    assert client.post(f"{API}/tracking/stop").json()["is_tracking"] is False


def test_consent_log(client):
    start_watching(client)
    client.patch(f"{API}/settings", json={"collectionEnabled": False})

    body = client.get(f"{API}/data/consent").json()
    assert body["total"] == 2
    assert [r["changeType"] for r in body["records"]] == ["granted", "revoked"]


def test_summary_and_compliance(client):
    summary = client.get(f"{API}/data/summary").json()
    assert summary["totalLocations"] == 0
    assert summary["isTrackingEnabled"] is False

    compliance = client.get(f"{API}/data/compliance").json()
    assert compliance["hasConsent"] is False
    assert compliance["userControl"] is True


@pytest.mark.parametrize("fmt,media_type,marker", [
    ("json", "application/json", '"version": "1.0"'),
    ("csv", "text/csv", "timestamp,latitude,longitude,accuracy,source"),
    ("gpx", "application/gpx+xml", "<gpx "),
])
def test_export(client, fmt, media_type, marker):
    response = client.get(f"{API}/data/export", params={"format": fmt})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(media_type)
    assert f".{fmt}" in response.headers["content-disposition"]
    assert marker in response.text


def test_import_round_trip(client):
    start_watching(client)
    client.post(f"{API}/agent/ping", json={"latitude": 1.0, "longitude": 2.0})
    exported = client.get(f"{API}/data/export").json()

    assert client.delete(f"{API}/data").json() == {"cleared": True}
    assert client.get(f"{API}/locations/history").json()["total"] == 0

    body = client.post(f"{API}/data/import", json=exported).json()
    assert body == {"imported": True, "total_locations": 1, "total_consent_records": 1}


def test_import_rejects_malformed_payload(client):
    response = client.post(f"{API}/data/import", json={"locationHistory": "nowhere"})
    assert response.status_code == 400


def test_cleanup_applies_retention(client):
    start_watching(client)
    client.post(f"{API}/agent/ping", json={"latitude": 1.0, "longitude": 2.0})

    body = client.post(f"{API}/locations/cleanup").json()
    assert body == {"removed": 0, "total": 1}
