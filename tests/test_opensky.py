"""Tests for the OpenSky state-vector conversion and fetch handling."""

import json

import pytest

from airwatch.config.models import AirportConfig, OpenSkyConfig
from airwatch.ingestion.opensky import (
    OpenSkyClient,
    TelemetryFetchError,
    convert_state,
    convert_states,
)

API_TIME = 1_700_000_000


def state_vector(**overrides):
    """A /states/all row for a descending aircraft near the airport."""
    fields = {
        "icao24": " 4X1234 ",
        "callsign": "ELY001  ",
        "origin_country": "Israel",
        "time_position": API_TIME,
        "last_contact": API_TIME,
        "longitude": 34.88,
        "latitude": 32.01,
        "baro_altitude": 1000.0,
        "on_ground": False,
        "velocity": 100.0,
        "true_track": 270.0,
        "vertical_rate": -5.0,
        "sensors": None,
        "geo_altitude": 1050.0,
        "squawk": "7500",
        "spi": False,
        "position_source": 0,
    }
    fields.update(overrides)
    return list(fields.values())


class FakeResponse:
    """Minimal stand-in for an aiohttp response context."""

    status = 200
    reason = "OK"

    def __init__(self, body: str) -> None:
        self.body = body

    async def json(self):
        return json.loads(self.body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    closed = False

    def __init__(self, body: str) -> None:
        self.body = body
        self.requests = 0

    def get(self, url, params=None, headers=None):
        self.requests += 1
        return FakeResponse(self.body)


class TestConvertState:
    """State vector to snapshot conversion"""

    def test_converts_units(self):
        snapshot = convert_state(state_vector(), API_TIME * 1000)

        assert snapshot.icao24 == "4x1234"
        assert snapshot.callsign == "ELY001"
        assert snapshot.origin_country == "Israel"
        assert snapshot.timestamp == API_TIME * 1000
        assert snapshot.position.altitude_feet == 3281
        assert snapshot.movement.ground_speed_knots == 194
        assert snapshot.movement.heading_degrees == 270
        assert snapshot.movement.vertical_rate_fpm == -984
        assert snapshot.status.squawk_code == 7500
        assert snapshot.status.on_ground is False

    def test_missing_optional_values(self):
        snapshot = convert_state(
            state_vector(callsign=None, baro_altitude=None, velocity=None, squawk=None),
            API_TIME * 1000,
        )

        assert snapshot.callsign is None
        assert snapshot.position.altitude_feet is None
        assert snapshot.movement.ground_speed_knots == 0
        assert snapshot.status.squawk_code is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"icao24": None},
            {"icao24": "   "},
            {"latitude": None},
            {"longitude": None},
            {"latitude": 123.0},
        ],
    )
    def test_unusable_vectors_dropped(self, overrides):
        assert convert_state(state_vector(**overrides), API_TIME * 1000) is None

    def test_short_vector_dropped(self):
        assert convert_state(state_vector()[:10], API_TIME * 1000) is None

    @pytest.mark.parametrize("squawk,expected", [("7700", 7700), ("", None), ("12ab", None)])
    def test_squawk_parsing(self, squawk, expected):
        snapshot = convert_state(state_vector(squawk=squawk), API_TIME * 1000)
        assert snapshot.status.squawk_code == expected

    def test_convert_states_skips_bad_rows(self):
        rows = [state_vector(), state_vector(latitude=None), state_vector(icao24="abc123")]

        snapshots = convert_states(rows, API_TIME * 1000)

        assert [s.icao24 for s in snapshots] == ["4x1234", "abc123"]
        assert convert_states(None, API_TIME * 1000) == []


class TestOpenSkyClient:
    """Client parameters and fetch outcome"""

    @pytest.fixture
    def client(self):
        return OpenSkyClient(OpenSkyConfig(retry_delay_seconds=0), AirportConfig())

    def test_bounding_box_params(self, client):
        params = client.build_params()

        assert set(params) == {"lamin", "lomin", "lamax", "lomax"}
        assert float(params["lamin"]) < 32.011389 < float(params["lamax"])
        assert float(params["lomin"]) < 34.886667 < float(params["lomax"])
        assert len(params["lamin"].split(".")[1]) == 6

    async def test_fetch_success(self, client, monkeypatch):
        async def fake_request(headers):
            return {"time": API_TIME, "states": [state_vector(), state_vector(latitude=None)]}

        monkeypatch.setattr(client, "_request_states", fake_request)

        result = await client.fetch_snapshots()

        assert result.success is True
        assert result.count == 1
        assert result.snapshots[0].timestamp == API_TIME * 1000
        assert result.metadata["apiTimestamp"] == API_TIME
        assert result.metadata["authenticated"] is False

    async def test_fetch_with_no_states(self, client, monkeypatch):
        async def fake_request(headers):
            return {"time": API_TIME, "states": None}

        monkeypatch.setattr(client, "_request_states", fake_request)

        result = await client.fetch_snapshots()

        assert result.success is True
        assert result.snapshots == []

    async def test_fetch_failure_after_retries(self, client, monkeypatch):
        attempts = []

        async def failing_request(headers):
            attempts.append(headers)
            raise TelemetryFetchError("OpenSky API error: 503 Service Unavailable")

        monkeypatch.setattr(client, "_request_states", failing_request)

        result = await client.fetch_snapshots()

        assert result.success is False
        assert "503" in result.error
        assert len(attempts) == 3

    async def test_recovers_on_retry(self, client, monkeypatch):
        attempts = []

        async def flaky_request(headers):
            attempts.append(headers)
            if len(attempts) == 1:
                raise TelemetryFetchError("timeout")
            return {"time": API_TIME, "states": [state_vector()]}

        monkeypatch.setattr(client, "_request_states", flaky_request)

        result = await client.fetch_snapshots()

        assert result.success is True
        assert len(attempts) == 2

    async def test_close_without_session(self, client):
        await client.close()
        assert client.source_name == "opensky"

    async def test_malformed_json_is_a_fetch_failure(self, client, monkeypatch):
        session = FakeSession("{not json")

        async def ensure_session():
            return session

        monkeypatch.setattr(client, "_ensure_session", ensure_session)

        result = await client.fetch_snapshots()

        assert result.success is False
        assert "invalid JSON" in result.error
        assert session.requests == 3

    @pytest.mark.parametrize("body,kind", [("null", "NoneType"), ("[1, 2]", "list")])
    async def test_non_object_body_is_a_fetch_failure(self, client, monkeypatch, body, kind):
        session = FakeSession(body)

        async def ensure_session():
            return session

        monkeypatch.setattr(client, "_ensure_session", ensure_session)

        result = await client.fetch_snapshots()

        assert result.success is False
        assert result.error == f"OpenSky returned unexpected body: {kind}"
