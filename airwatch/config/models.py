"""
Pydantic models for application configuration.

This module defines all configuration models that are validated when loading
YAML configuration files. Every section carries defaults so that an empty
``AppConfig()`` is a usable configuration.

Configuration files:
    - config/airport.yaml: Monitored airport and radius
    - config/alerts.yaml: Retention, cooldown, detectors, composite, storage
    - config/monitoring.yaml: Scheduler interval and retry policy
    - config/opensky.yaml: Telemetry feed connection settings
    - config/system.yaml: API server, logging and data collection

Example:
    >>> from airwatch.config.models import AppConfig
    >>> config = AppConfig()
    >>> config.alerts.detection.sharp_turn.min_angle_change
    20.0
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# AIRPORT CONFIGURATION
# =============================================================================


class Coordinates(BaseModel):
    """A latitude/longitude pair."""

    model_config = {"frozen": True, "extra": "forbid"}

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AirportConfig(BaseModel):
    """Monitored airport reference point."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(
        default="Ben Gurion International Airport",
        description="Airport name",
    )
    icao: str = Field(default="LLBG", description="ICAO code")
    iata: str = Field(default="TLV", description="IATA code")
    coordinates: Coordinates = Field(
        default_factory=lambda: Coordinates(latitude=32.011389, longitude=34.886667),
        description="Airport reference point",
    )
    monitoring_radius_km: float = Field(
        default=30.0,
        description="Radius of the monitored area in kilometers",
        gt=0,
        le=500,
    )

    def get_bounds(self) -> Dict[str, float]:
        """
        Bounding box around the airport for telemetry queries.

        One degree of latitude is taken as 111 km; longitude is scaled by
        the cosine of the airport latitude.

        Returns:
            Dict with north, south, east and west bounds in degrees.
        """
        lat = self.coordinates.latitude
        lon = self.coordinates.longitude
        lat_delta = self.monitoring_radius_km / 111
        lon_delta = self.monitoring_radius_km / (111 * math.cos(math.radians(lat)))
        return {
            "north": lat + lat_delta,
            "south": lat - lat_delta,
            "east": lon + lon_delta,
            "west": lon - lon_delta,
        }


# =============================================================================
# DETECTOR CONFIGURATION
# =============================================================================


class SharpTurnConfig(BaseModel):
    """Sharp turn detector thresholds."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_angle_change: float = Field(
        default=20.0,
        description="Minimum heading change in degrees",
        ge=0,
        le=180,
    )
    time_window_seconds: float = Field(
        default=90.0,
        description="Maximum time between the two compared samples",
        gt=0,
    )


class HoldingPatternConfig(BaseModel):
    """Holding pattern detector thresholds."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_samples: int = Field(
        default=10,
        description="Number of most recent positions examined",
        ge=3,
        le=50,
    )
    min_circular_movement: float = Field(
        default=180.0,
        description="Minimum sum of unsigned heading deltas in degrees",
        ge=0,
    )
    max_radius_meters: float = Field(
        default=8000.0,
        description="Maximum distance of any sample from the centroid",
        gt=0,
    )
    max_speed_knots: float = Field(
        default=300.0,
        description="Maximum average ground speed",
        gt=0,
    )


class NorthwardDiversionConfig(BaseModel):
    """
    Northward diversion detector thresholds.

    The sector wraps through north: a heading matches when it is
    ``>= sector_min`` or ``<= sector_max``.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    sector_min: float = Field(default=300.0, ge=0, lt=360)
    sector_max: float = Field(default=60.0, ge=0, lt=360)
    min_angle_change: float = Field(default=15.0, ge=0, le=180)


class ApproachAbortConfig(BaseModel):
    """Approach abort detector thresholds."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    airport_radius_meters: float = Field(
        default=25000.0,
        description="Maximum distance from the airport reference point",
        gt=0,
    )
    max_approach_altitude_feet: float = Field(
        default=5000.0,
        description="Maximum altitude considered on approach",
        gt=0,
    )
    min_deviation_angle: float = Field(default=15.0, ge=0, le=180)


class EmergencyCodesConfig(BaseModel):
    """Squawk codes treated as emergencies."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    codes: List[int] = Field(
        default_factory=lambda: [7700, 7600, 7500, 7400, 7777],
        description="Squawk codes that raise an EMERGENCY_CODE alert",
    )


class SuddenSpeedChangeConfig(BaseModel):
    """Sudden ground speed change thresholds."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_change_percent: float = Field(default=30.0, gt=0)
    time_window_seconds: float = Field(default=60.0, gt=0)


class SuddenAltitudeChangeConfig(BaseModel):
    """Sudden altitude change thresholds."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_change_feet: float = Field(default=500.0, gt=0)
    time_window_seconds: float = Field(default=60.0, gt=0)


class MultipleDiversionsConfig(BaseModel):
    """Fleet-level check for several aircraft diverting north."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_aircraft: int = Field(default=1, ge=1)
    time_window_seconds: float = Field(default=180.0, gt=0)


class TrafficStopConfig(BaseModel):
    """Fleet-level check for a sudden drop in airborne traffic."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_reduction_percent: float = Field(default=40.0, gt=0, le=100)
    time_window_seconds: float = Field(default=180.0, gt=0)
    min_baseline_aircraft: int = Field(
        default=3,
        description="Minimum airborne count in the window before a drop counts",
        ge=1,
    )


class DetectionConfig(BaseModel):
    """All detector sections."""

    model_config = {"frozen": True, "extra": "forbid"}

    sharp_turn: SharpTurnConfig = Field(default_factory=SharpTurnConfig)
    holding_pattern: HoldingPatternConfig = Field(default_factory=HoldingPatternConfig)
    northward_diversion: NorthwardDiversionConfig = Field(
        default_factory=NorthwardDiversionConfig
    )
    approach_abort: ApproachAbortConfig = Field(default_factory=ApproachAbortConfig)
    emergency_codes: EmergencyCodesConfig = Field(default_factory=EmergencyCodesConfig)
    sudden_speed_change: SuddenSpeedChangeConfig = Field(
        default_factory=SuddenSpeedChangeConfig
    )
    sudden_altitude_change: SuddenAltitudeChangeConfig = Field(
        default_factory=SuddenAltitudeChangeConfig
    )
    multiple_diversions: MultipleDiversionsConfig = Field(
        default_factory=MultipleDiversionsConfig
    )
    traffic_stop: TrafficStopConfig = Field(default_factory=TrafficStopConfig)


class CompositeConfig(BaseModel):
    """Composite SECURITY_ALERT synthesis."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    min_events: int = Field(default=2, ge=1)
    time_window_seconds: float = Field(default=600.0, gt=0)
    severity: str = Field(default="HIGH")

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: Any) -> str:
        """Accept lower-case severities in YAML."""
        if isinstance(v, str):
            v = v.upper()
            if v not in ("LOW", "MEDIUM", "HIGH", "CRITICAL"):
                raise ValueError(f"Unknown severity: {v}")
        return v


# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================


class StorageSettings(BaseModel):
    """File layout and save policy for alerts."""

    model_config = {"frozen": True, "extra": "forbid"}

    alerts_directory: str = Field(default="./data/alerts")
    backup_directory: str = Field(default="./data/alerts/backups")
    current_alerts_file: str = Field(default="current_alerts.json")
    historical_alerts_file: str = Field(default="historical_alerts.json")
    daily_file_prefix: str = Field(
        default="alerts_",
        description="Daily files are named <prefix>YYYY-MM-DD.json",
    )
    auto_save: bool = Field(default=True)
    save_interval_seconds: float = Field(default=30.0, gt=0)
    max_current_file_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Current-file size above which the set is archived and pruned",
        gt=0,
    )
    create_daily_files: bool = Field(default=True)


# =============================================================================
# ALERTS CONFIGURATION
# =============================================================================


class AlertsConfig(BaseModel):
    """Complete alerts configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    retention_seconds: float = Field(
        default=30 * 60,
        description="How long alerts stay in memory",
        gt=0,
    )
    cooldown_seconds: float = Field(
        default=2 * 60,
        description="Minimum time between alerts of the same type and aircraft",
        ge=0,
    )
    history_size: int = Field(
        default=50,
        description="Snapshots kept per aircraft",
        ge=10,
        le=50,
    )
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    composite: CompositeConfig = Field(default_factory=CompositeConfig)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @model_validator(mode="after")
    def validate_history(self) -> "AlertsConfig":
        """The history must hold enough samples for the holding pattern check."""
        if self.detection.holding_pattern.min_samples > self.history_size:
            raise ValueError(
                "holding_pattern.min_samples cannot exceed history_size"
            )
        return self


# =============================================================================
# MONITORING CONFIGURATION
# =============================================================================


class MonitoringSettings(BaseModel):
    """Scheduler cadence and retry policy."""

    model_config = {"frozen": True, "extra": "forbid"}

    interval_seconds: float = Field(
        default=30.0,
        description="Delay between the end of one cycle and the next",
        gt=0,
    )
    max_retries: int = Field(
        default=3,
        description="Consecutive failures retried on the short delay",
        ge=0,
    )
    retry_delay_seconds: float = Field(
        default=5.0,
        description="Delay after a failed cycle",
        gt=0,
    )

    def merged(self, overrides: Dict[str, Any]) -> "MonitoringSettings":
        """
        Return new settings with overrides applied and validated.

        Raises:
            pydantic.ValidationError: If an override is unknown or invalid.
        """
        return MonitoringSettings.model_validate({**self.model_dump(), **overrides})


# =============================================================================
# TELEMETRY FEED CONFIGURATION
# =============================================================================


class OpenSkyConfig(BaseModel):
    """OpenSky Network state-vector feed."""

    model_config = {"frozen": True, "extra": "forbid"}

    base_url: str = Field(default="https://opensky-network.org/api/states/all")
    auth_url: str = Field(
        default=(
            "https://auth.opensky-network.org/auth/realms/opensky-network"
            "/protocol/openid-connect/token"
        )
    )
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=3, ge=1, le=10)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)

    @property
    def auth_enabled(self) -> bool:
        """Check if OAuth client credentials are configured."""
        return bool(self.client_id and self.client_secret)


# =============================================================================
# DATA COLLECTION CONFIGURATION
# =============================================================================


class CollectionSettings(BaseModel):
    """
    Raw flight data collection.

    Every run appends the fetched aircraft to the file of the current
    ``window_minutes`` UTC window, and any emergency squawks to a daily log.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=True)
    interval_seconds: float = Field(
        default=30.0,
        description="Delay between collection runs",
        gt=0,
    )
    window_minutes: int = Field(
        default=5,
        description="Width of the time window covered by one flights file",
        ge=1,
        le=60,
    )
    flights_directory: str = Field(default="./data/flights")
    emergency_directory: str = Field(default="./data/alerts")

    @field_validator("window_minutes")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if 60 % v != 0:
            raise ValueError("window_minutes must divide an hour evenly")
        return v


# =============================================================================
# SYSTEM CONFIGURATION
# =============================================================================


class ApiConfig(BaseModel):
    """HTTP control surface."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8080"]
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(default=LogFormat.JSON)
    level: LogLevel = Field(default=LogLevel.INFO)


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root application configuration.

    Example:
        >>> config = AppConfig()
        >>> config.airport.icao
        'LLBG'
    """

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(default="Ben Gurion Security Alerts System")
    airport: AirportConfig = Field(default_factory=AirportConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    opensky: OpenSkyConfig = Field(default_factory=OpenSkyConfig)
    collection: CollectionSettings = Field(default_factory=CollectionSettings)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
