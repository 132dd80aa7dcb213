"""Tests for raw flight data collection."""

import asyncio
import json

import pytest

from airwatch.config.models import CollectionSettings
from airwatch.ingestion.collector import (
    FlightDataCollector,
    detect_emergencies,
    window_filename,
)
from airwatch.models.alerts import AlertSeverity, EmergencyCodeType
from airwatch.models.monitoring import FetchResult
from tests.conftest import BASE_TS, FakeSource, make_snapshot

# 2023-11-14T22:13:20Z falls in the 22:10 window
WINDOW_FILE = "flights-2023-11-14_22-10.json"
EMERGENCY_FILE = "emergency-alerts-2023-11-14.json"


def fetched(*squawks, icao_prefix: str = "4x") -> FetchResult:
    snapshots = [
        make_snapshot(icao24=f"{icao_prefix}{index:04d}", squawk=squawk)
        for index, squawk in enumerate(squawks)
    ]
    return FetchResult(success=True, snapshots=snapshots, metadata={"apiTimestamp": 1})


@pytest.fixture
def settings(tmp_path) -> CollectionSettings:
    return CollectionSettings(
        interval_seconds=60,
        flights_directory=str(tmp_path / "flights"),
        emergency_directory=str(tmp_path / "alerts"),
    )


@pytest.fixture
def frozen_clock(monkeypatch):
    monkeypatch.setattr("airwatch.ingestion.collector.now_ms", lambda: BASE_TS)


@pytest.fixture
async def collector(settings):
    collector = FlightDataCollector(FakeSource(), settings)
    yield collector
    await collector.stop()


class TestHelpers:
    """File naming and emergency extraction"""

    @pytest.mark.parametrize(
        "offset_minutes,window_minutes,expected",
        [
            (0, 5, "flights-2023-11-14_22-10.json"),
            (-3, 5, "flights-2023-11-14_22-10.json"),
            (-4, 5, "flights-2023-11-14_22-05.json"),
            (0, 15, "flights-2023-11-14_22-00.json"),
            (0, 1, "flights-2023-11-14_22-13.json"),
            (47, 5, "flights-2023-11-14_23-00.json"),
            (107, 5, "flights-2023-11-15_00-00.json"),
        ],
    )
    def test_window_filename(self, offset_minutes, window_minutes, expected):
        timestamp = BASE_TS + offset_minutes * 60_000

        assert window_filename(timestamp, window_minutes) == expected

    def test_detect_emergencies(self):
        snapshots = [
            make_snapshot(icao24="aaa111", squawk=7500),
            make_snapshot(icao24="bbb222", squawk=1200),
            make_snapshot(icao24="ccc333", squawk=None),
            make_snapshot(icao24="ddd444", squawk=7600),
        ]

        records = detect_emergencies(snapshots, BASE_TS)

        assert [r.aircraft.icao24 for r in records] == ["aaa111", "ddd444"]
        hijack = records[0]
        assert hijack.id == f"aaa111_7500_{BASE_TS}"
        assert hijack.emergency.type == EmergencyCodeType.HIJACK
        assert hijack.emergency.severity == AlertSeverity.CRITICAL
        assert records[1].emergency.type == EmergencyCodeType.RADIO_FAILURE


class TestCollectOnce:
    """Single collection runs"""

    async def test_appends_to_window_file(self, collector, frozen_clock):
        collector.source.results.extend([fetched(None, None), fetched(None)])

        first = await collector.collect_once()
        second = await collector.collect_once()

        assert first["success"] is True
        assert first["count"] == 2
        assert second["file"] == first["file"]

        document = json.loads((collector.flights_dir / WINDOW_FILE).read_text())
        assert document["totalCollections"] == 2
        assert [c["count"] for c in document["collections"]] == [2, 1]
        entry = document["collections"][0]
        assert entry["timestamp"] == BASE_TS
        assert entry["metadata"] == {"apiTimestamp": 1}
        assert entry["aircraft"][0]["position"]["altitudeFeet"] == 20000.0

    async def test_emergencies_logged_per_day(self, collector, frozen_clock):
        collector.source.results.extend([fetched(7700, None), fetched(7500)])

        first = await collector.collect_once()
        await collector.collect_once()

        assert first["emergencyAlerts"] == 1
        log = json.loads((collector.emergency_dir / EMERGENCY_FILE).read_text())
        assert log["date"] == "2023-11-14"
        assert log["totalAlerts"] == 2
        assert [a["emergency"]["type"] for a in log["alerts"]] == ["EMERGENCY", "HIJACK"]
        assert log["alerts"][1]["emergency"]["squawkCode"] == 7500

    async def test_no_emergency_file_without_emergencies(self, collector, frozen_clock):
        collector.source.results.append(fetched(1200))

        await collector.collect_once()

        assert not (collector.emergency_dir / EMERGENCY_FILE).exists()

    async def test_empty_fetch_is_a_failed_run(self, collector):
        collector.source.results.append(FetchResult(success=True, snapshots=[]))

        result = await collector.collect_once()

        assert result["success"] is False
        assert result["error"] == "No aircraft data received"
        assert result["failedStep"] == "fetch"
        assert collector.stats.total_runs == 1
        assert collector.stats.successful_runs == 0
        assert collector.stats.last_error["message"] == "No aircraft data received"

    async def test_fetch_failure(self, collector):
        collector.source.results.append(FetchResult(success=False, error="HTTP 429"))

        result = await collector.collect_once()

        assert result["error"] == "HTTP 429"
        assert result["failedStep"] == "fetch"

    async def test_source_exception_is_a_failed_run(self, settings):
        class BrokenSource(FakeSource):
            async def fetch_snapshots(self):
                raise RuntimeError("connection reset")

        collector = FlightDataCollector(BrokenSource(), settings)

        result = await collector.collect_once()

        assert result == {
            "success": False,
            "error": "connection reset",
            "failedStep": "fetch",
            "durationMs": result["durationMs"],
        }

    async def test_write_failure(self, tmp_path, settings):
        blocker = tmp_path / "flights"
        blocker.write_text("not a directory")
        collector = FlightDataCollector(FakeSource([fetched(None)]), settings)

        result = await collector.collect_once()

        assert result["success"] is False
        assert result["failedStep"] == "write"
        assert collector.stats.file_writes == 0

    async def test_corrupted_window_file_starts_over(self, collector, frozen_clock):
        collector.flights_dir.mkdir(parents=True)
        (collector.flights_dir / WINDOW_FILE).write_bytes(b'{"collections": [\xff')
        collector.source.results.append(fetched(None))

        result = await collector.collect_once()

        assert result["success"] is True
        document = json.loads((collector.flights_dir / WINDOW_FILE).read_text())
        assert document["totalCollections"] == 1
        assert len(list(collector.flights_dir.glob("corrupted_flights-*.json"))) == 1

    async def test_success_rate_and_error_reset(self, collector):
        collector.source.results.extend(
            [FetchResult(success=False, error="timeout"), fetched(None), fetched(None)]
        )

        for _ in range(3):
            await collector.collect_once()

        status = collector.status()
        assert status["totalRuns"] == 3
        assert status["successfulRuns"] == 2
        assert status["successRate"] == 67
        assert status["lastError"] is None
        assert status["fileWrites"] == 2


class TestLifecycle:
    """Start, stop and manual triggers"""

    async def test_start_runs_immediately(self, collector):
        collector.source.results.append(fetched(None))

        result = await collector.start()
        for _ in range(200):
            if collector.stats.successful_runs:
                break
            await asyncio.sleep(0.01)

        assert result["success"] is True
        assert result["intervalSeconds"] == 60
        assert collector.stats.successful_runs == 1
        status = collector.status()
        assert status["isRunning"] is True
        assert status["nextRun"] == status["lastRun"] + 60_000

    async def test_start_twice_conflicts(self, collector):
        await collector.start()

        result = await collector.start()

        assert result == {"success": False, "message": "Collection already running"}

    async def test_stop(self, collector):
        await collector.start()

        result = await collector.stop()

        assert result["success"] is True
        assert result["stats"]["isRunning"] is False
        assert collector.status()["nextRun"] is None
        assert (await collector.stop())["success"] is False

    async def test_disabled_collection(self, tmp_path):
        settings = CollectionSettings(enabled=False, flights_directory=str(tmp_path))
        collector = FlightDataCollector(FakeSource([fetched(None)]), settings)

        assert (await collector.start())["success"] is False
        result = await collector.trigger()

        assert result["success"] is False
        assert result["failedStep"] is None
        assert collector.source.calls == 0

    async def test_trigger(self, collector):
        collector.source.results.append(fetched(7600))

        result = await collector.trigger()

        assert result["success"] is True
        assert result["emergencyAlerts"] == 1
        assert collector.is_running is False
