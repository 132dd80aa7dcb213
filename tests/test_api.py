"""Tests for the HTTP control surface."""

import pytest
from fastapi.testclient import TestClient

from airwatch.api.app import create_app
from airwatch.clock import now_ms
from airwatch.models.monitoring import FetchResult
from airwatch.services import AlertMonitoringService
from tests.conftest import FakeSource, make_snapshot
from tests.test_services import service_config


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def client(tmp_path, source):
    service = AlertMonitoringService(service_config(tmp_path), source=source)
    with TestClient(create_app(service)) as client:
        yield client


def push_emergency(source: FakeSource, squawk: int = 7700) -> None:
    snapshot = make_snapshot(timestamp=now_ms(), squawk=squawk)
    source.results.append(FetchResult(success=True, snapshots=[snapshot]))


class TestEnvelope:
    """Response envelope and status codes"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["initialized"] is True
        assert body["data"]["monitoring"] == "STOPPED"
        assert isinstance(body["meta"]["timestamp"], int)

    def test_validation_error_is_400(self, client):
        response = client.get("/api/alerts/type/NOT_A_TYPE")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["type"] == "validation"
        assert "NOT_A_TYPE" in body["error"]["message"]

    def test_upstream_error_is_502(self, client, source):
        source.results.append(FetchResult(success=False, error="HTTP 503"))

        response = client.post("/api/alerts/monitor/manual")

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "upstream"


class TestMonitorEndpoints:
    """Monitoring control"""

    def test_start_stop_cycle(self, client):
        started = client.post("/api/alerts/monitor/start", json={"intervalSeconds": 45})
        assert started.status_code == 200
        assert started.json()["data"]["status"]["settings"]["intervalSeconds"] == 45

        conflict = client.post("/api/alerts/monitor/start")
        assert conflict.status_code == 409
        assert conflict.json()["error"]["status"]["isRunning"] is True

        stopped = client.post("/api/alerts/monitor/stop")
        assert stopped.status_code == 200
        assert "finalStats" in stopped.json()["data"]

        assert client.post("/api/alerts/monitor/stop").status_code == 409

    def test_start_without_body(self, client):
        response = client.post("/api/alerts/monitor/start")

        assert response.status_code == 200
        assert response.json()["data"]["status"]["isRunning"] is True

    def test_invalid_start_settings(self, client):
        response = client.post("/api/alerts/monitor/start", json={"maxRetries": -1})

        assert response.status_code == 400

    def test_status_and_config(self, client):
        patched = client.patch("/api/alerts/monitor/config", json={"retryDelaySeconds": 2})
        assert patched.status_code == 200

        status = client.get("/api/alerts/monitor/status").json()["data"]["status"]
        assert status["settings"]["retryDelaySeconds"] == 2
        assert status["state"] == "STOPPED"

    def test_manual_analysis(self, client, source):
        push_emergency(source, squawk=7500)

        response = client.post("/api/alerts/monitor/manual")

        assert response.status_code == 200
        analysis = response.json()["data"]["analysis"]
        assert analysis["totalNewAlerts"] == 1
        assert analysis["newAlerts"][0]["details"]["codeType"] == "HIJACK"


class TestAlertEndpoints:
    """Alert queries and maintenance"""

    def test_query_after_analysis(self, client, source):
        push_emergency(source)
        assert client.get("/api/alerts/analyze").status_code == 200

        assert client.get("/api/alerts/active").json()["data"]["count"] == 1
        assert client.get("/api/alerts/all").json()["data"]["count"] == 1
        assert client.get("/api/alerts/severity/high").json()["data"]["count"] == 1

        filtered = client.get("/api/alerts", params={"type": "EMERGENCY_CODE", "limit": 5})
        assert filtered.status_code == 200
        assert filtered.json()["data"]["count"] == 1
        record = filtered.json()["data"]["alerts"][0]
        assert record["aircraft"]["position"]["altitudeFeet"] == 20000

    def test_stats_and_self_test(self, client):
        stats = client.get("/api/alerts/stats").json()["data"]["stats"]
        assert stats["total"] == 0

        test = client.get("/api/alerts/test").json()["data"]["test"]
        assert test["healthy"] is True

    def test_save_reload_clear(self, client, source):
        push_emergency(source)
        client.post("/api/alerts/monitor/manual")

        saved = client.post("/api/alerts/save").json()["data"]
        assert saved["result"]["current"]["count"] == 1

        assert client.post("/api/alerts/reload").json()["data"]["count"] == 1

        cleared = client.delete("/api/alerts/clear").json()["data"]
        assert cleared["clearedCount"] == 1
        assert client.get("/api/alerts/all").json()["data"]["count"] == 0

        history = client.get("/api/alerts/history/full").json()["data"]
        assert history["count"] == 1

    def test_daily_history(self, client, source):
        push_emergency(source)
        client.post("/api/alerts/monitor/manual")
        day = client.post("/api/alerts/save").json()["data"]["result"]["daily"]["date"]

        files = client.get("/api/alerts/history/daily").json()["data"]
        assert [f["date"] for f in files["files"]] == [day]

        daily = client.get(f"/api/alerts/history/daily/{day}").json()["data"]
        assert daily["found"] is True
        assert daily["count"] == 1

        ranged = client.get(
            "/api/alerts/history/range", params={"startDate": day, "endDate": day}
        )
        assert ranged.json()["data"]["count"] == 1

    def test_missing_daily_file(self, client):
        response = client.get("/api/alerts/history/daily/2020-01-01")

        assert response.status_code == 200
        assert response.json()["data"]["found"] is False

    def test_range_requires_dates(self, client):
        response = client.get("/api/alerts/history/range")

        assert response.status_code == 400
        assert "startDate" in response.json()["error"]["message"]


class TestAircraftAndCollection:
    """Live aircraft, data collection and system info"""

    def test_info(self, client):
        response = client.get("/info")

        assert response.status_code == 200
        info = response.json()["data"]["info"]
        assert info["version"] == "1.0.0"
        assert info["endpoints"]["aircraft"] == "/api/aircraft"

    def test_aircraft(self, client, source):
        push_emergency(source)

        response = client.get("/api/aircraft")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["aircraft"][0]["status"]["squawkCode"] == 7700
        assert client.get("/api/alerts/all").json()["data"]["count"] == 0

    def test_aircraft_fetch_failure_is_502(self, client, source):
        source.results.append(FetchResult(success=False, error="HTTP 503"))

        response = client.get("/api/aircraft")

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "upstream"

    def test_connection_check(self, client, source):
        source.results.append(FetchResult(success=False, error="HTTP 401"))

        response = client.get("/api/aircraft/test")

        assert response.status_code == 200
        connection = response.json()["data"]["connection"]
        assert connection["success"] is False
        assert connection["message"] == "Connection failed: HTTP 401"

    def test_trigger_collection(self, client, source):
        push_emergency(source)

        response = client.post("/api/collection/trigger")

        assert response.status_code == 200
        assert response.json()["data"]["emergencyAlerts"] == 1

        status = client.get("/api/collection").json()["data"]["collection"]
        assert status["successfulRuns"] == 1
        assert status["isRunning"] is False

    def test_trigger_fetch_failure_is_502(self, client, source):
        source.results.append(FetchResult(success=False, error="HTTP 503"))

        response = client.post("/api/collection/trigger")

        assert response.status_code == 502
        assert response.json()["error"]["message"] == "HTTP 503"

    def test_start_stop_collection(self, client):
        assert client.post("/api/collection/start").status_code == 200

        again = client.post("/api/collection/start")
        assert again.status_code == 409
        assert again.json()["error"]["collection"]["isRunning"] is True

        assert client.post("/api/collection/stop").status_code == 200
        assert client.post("/api/collection/stop").status_code == 409
