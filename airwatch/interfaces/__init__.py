"""
Abstract interfaces for the airspace monitor.

The key interface is TelemetrySource, which defines the contract for every
aircraft-state feed (OpenSky, replays, test doubles).

Example:
    >>> from airwatch.interfaces import TelemetrySource

Modules:
    telemetry_source: TelemetrySource ABC for telemetry feeds
"""

from airwatch.interfaces.telemetry_source import TelemetrySource

__all__: list[str] = [
    "TelemetrySource",
]
