"""
Configuration management for the airspace monitor.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models to ensure
type safety and catch configuration errors early.

Configuration is loaded from YAML files in the config/ directory:
    - airport.yaml: Monitored airport and radius
    - alerts.yaml: Alert retention, cooldown, detectors and storage
    - monitoring.yaml: Scheduler interval and retry policy
    - opensky.yaml: Telemetry feed
    - system.yaml: API server, logging and data collection

Example:
    >>> from airwatch.config import load_config
    >>> config = load_config()
    >>> config.alerts.detection.sharp_turn.min_angle_change
    20.0
"""

from airwatch.config.loader import ConfigLoadError, ConfigLoader, load_config
from airwatch.config.models import (
    # Enums
    LogFormat,
    LogLevel,
    # Airport
    AirportConfig,
    Coordinates,
    # Detectors
    ApproachAbortConfig,
    DetectionConfig,
    EmergencyCodesConfig,
    HoldingPatternConfig,
    MultipleDiversionsConfig,
    NorthwardDiversionConfig,
    SharpTurnConfig,
    SuddenAltitudeChangeConfig,
    SuddenSpeedChangeConfig,
    TrafficStopConfig,
    # Alerts
    AlertsConfig,
    CompositeConfig,
    StorageSettings,
    # Monitoring and feed
    MonitoringSettings,
    OpenSkyConfig,
    # System
    ApiConfig,
    CollectionSettings,
    LoggingConfig,
    # Root config
    AppConfig,
)

__all__: list[str] = [
    # Loader
    "load_config",
    "ConfigLoader",
    "ConfigLoadError",
    # Enums
    "LogFormat",
    "LogLevel",
    # Airport
    "Coordinates",
    "AirportConfig",
    # Detectors
    "SharpTurnConfig",
    "HoldingPatternConfig",
    "NorthwardDiversionConfig",
    "ApproachAbortConfig",
    "EmergencyCodesConfig",
    "SuddenSpeedChangeConfig",
    "SuddenAltitudeChangeConfig",
    "MultipleDiversionsConfig",
    "TrafficStopConfig",
    "DetectionConfig",
    # Alerts
    "CompositeConfig",
    "StorageSettings",
    "AlertsConfig",
    # Monitoring and feed
    "MonitoringSettings",
    "OpenSkyConfig",
    # System
    "ApiConfig",
    "CollectionSettings",
    "LoggingConfig",
    # Root config
    "AppConfig",
]
