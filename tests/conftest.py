"""Shared fixtures for the alert monitor tests."""

import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from airwatch.config.models import AirportConfig, AlertsConfig, StorageSettings
from airwatch.detection.detectors import DetectorRegistry
from airwatch.detection.manager import AlertManager
from airwatch.detection.state import AlertStore
from airwatch.detection.storage import AlertStorage
from airwatch.interfaces.telemetry_source import TelemetrySource
from airwatch.models.aircraft import AircraftSnapshot, AircraftStatus, Movement, Position
from airwatch.models.monitoring import FetchResult

# 2023-11-14T22:13:20Z
BASE_TS = 1_700_000_000_000

# Ben Gurion reference point
AIRPORT_LAT = 32.011389
AIRPORT_LON = 34.886667

# Far enough from the airport that approach-abort never fires
FAR_LAT = 33.5
FAR_LON = 35.5


def make_snapshot(
    icao24: str = "4x1234",
    timestamp: int = BASE_TS,
    heading: Optional[float] = 90.0,
    speed: float = 250.0,
    altitude: Optional[float] = 20000.0,
    latitude: float = FAR_LAT,
    longitude: float = FAR_LON,
    squawk: Optional[int] = None,
    on_ground: bool = False,
    callsign: Optional[str] = "ELY001",
) -> AircraftSnapshot:
    return AircraftSnapshot(
        icao24=icao24,
        callsign=callsign,
        timestamp=timestamp,
        position=Position(latitude=latitude, longitude=longitude, altitude_feet=altitude),
        movement=Movement(ground_speed_knots=speed, heading_degrees=heading),
        status=AircraftStatus(on_ground=on_ground, squawk_code=squawk),
    )


class FakeSource(TelemetrySource):
    """Telemetry source returning queued results in order."""

    def __init__(self, results: Optional[List[FetchResult]] = None) -> None:
        self.results = list(results or [])
        self.calls = 0
        self.closed = False

    @property
    def source_name(self) -> str:
        return "fake"

    async def fetch_snapshots(self) -> FetchResult:
        self.calls += 1
        if self.results:
            return self.results.pop(0)
        return FetchResult(success=True, snapshots=[])

    async def close(self) -> None:
        self.closed = True


def quiet_alerts_config(**overrides) -> AlertsConfig:
    """Alerts config with fleet checks and composites off unless overridden."""
    data = {
        "detection": {
            "multiple_diversions": {"enabled": False},
            "traffic_stop": {"enabled": False},
        },
        "composite": {"enabled": False},
    }
    data.update(overrides)
    return AlertsConfig.model_validate(data)


@pytest.fixture
def airport() -> AirportConfig:
    return AirportConfig()


@pytest.fixture
def alerts_config() -> AlertsConfig:
    return quiet_alerts_config()


@pytest.fixture
def store() -> AlertStore:
    return AlertStore.create(50)


@pytest.fixture
def manager(store: AlertStore, alerts_config: AlertsConfig, airport: AirportConfig) -> AlertManager:
    registry = DetectorRegistry.from_config(alerts_config.detection, airport)
    return AlertManager(store, registry, alerts_config)


@pytest.fixture
def storage_settings(tmp_path: Path) -> StorageSettings:
    return StorageSettings(
        alerts_directory=str(tmp_path / "alerts"),
        backup_directory=str(tmp_path / "alerts" / "backups"),
    )


@pytest.fixture
def storage(storage_settings: StorageSettings, store: AlertStore) -> AlertStorage:
    return AlertStorage(storage_settings, store)
