"""
Telemetry ingestion clients.

Modules:
    opensky: OpenSkyClient for the OpenSky Network states API
    collector: FlightDataCollector appending raw snapshots to window files
"""

from airwatch.ingestion.opensky import (
    OpenSkyClient,
    TelemetryFetchError,
    convert_state,
    convert_states,
)
from airwatch.ingestion.collector import (
    CollectionStats,
    FlightDataCollector,
    detect_emergencies,
    window_filename,
)

__all__ = [
    # OpenSky
    "OpenSkyClient",
    "TelemetryFetchError",
    "convert_state",
    "convert_states",
    # Collection
    "CollectionStats",
    "FlightDataCollector",
    "detect_emergencies",
    "window_filename",
]
