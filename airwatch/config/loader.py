"""
YAML configuration loader for the airspace monitor.

Each file is parsed with PyYAML and validated into its Pydantic model, so a bad
threshold or port fails at startup rather than mid-cycle.

Files read from the config directory:
    - config/airport.yaml: Monitored airport
    - config/alerts.yaml: Alert lifecycle, detectors and storage
    - config/monitoring.yaml: Scheduler settings
    - config/opensky.yaml: Telemetry feed settings
    - config/system.yaml: API server, logging and data collection

Environment variables override:
    - LOG_LEVEL: Application log level
    - ALERTS_DATA_DIR: Alerts directory (backups go to <dir>/backups)
    - OPENSKY_CLIENT_ID / OPENSKY_CLIENT_SECRET: Feed OAuth credentials
    - API_PORT: HTTP port
    - FLIGHTS_DATA_DIR: Directory for collected flights files

Example:
    >>> from airwatch.config.loader import load_config
    >>> config = load_config("config")
    >>> print(config.airport.icao)
    LLBG
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from airwatch.config.models import (
    AirportConfig,
    AlertsConfig,
    ApiConfig,
    AppConfig,
    CollectionSettings,
    LoggingConfig,
    LogLevel,
    MonitoringSettings,
    OpenSkyConfig,
)


class ConfigLoadError(Exception):
    """
    Configuration could not be read or validated.

    Attributes:
        message: Human-readable reason.
        file_path: Offending file or directory, when known.
        cause: Underlying YAML or validation error.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Builds an AppConfig from one YAML file per concern.

    Layout:
        config/
        ├── airport.yaml     - Monitored airport and radius
        ├── alerts.yaml      - Retention, cooldown, detectors, storage
        ├── monitoring.yaml  - Scheduler interval and retries
        ├── opensky.yaml     - Telemetry feed
        └── system.yaml      - API server, logging, data collection

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> config.alerts.cooldown_seconds
        120.0
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Args:
            config_dir: Directory holding the YAML files.

        Raises:
            ConfigLoadError: If the directory is missing or is a file.
        """
        self.config_dir = Path(config_dir)
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Parse one file of the config directory.

        Args:
            filename: File name, e.g. 'alerts.yaml'.

        Returns:
            The top-level mapping.

        Raises:
            ConfigLoadError: If the file is missing, empty, malformed or not
                a mapping.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            raise ConfigLoadError(
                f"Configuration file not found: {file_path}",
                file_path=file_path,
            )

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            raise ConfigLoadError(
                f"Configuration file is empty: {file_path}",
                file_path=file_path,
            )
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_airport(self) -> AirportConfig:
        """Load the monitored airport from airport.yaml."""
        data = self._load_yaml("airport.yaml")
        try:
            return AirportConfig.model_validate(data.get("airport", {}))
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid airport configuration: {e}",
                file_path=self.config_dir / "airport.yaml",
                cause=e,
            ) from e

    def _load_alerts(self) -> AlertsConfig:
        """
        Load alert configuration from alerts.yaml.

        ``ALERTS_DATA_DIR`` replaces both storage directories.
        """
        data = self._load_yaml("alerts.yaml")

        try:
            storage_data = dict(data.get("storage", {}))
            data_dir = os.getenv("ALERTS_DATA_DIR")
            if data_dir:
                storage_data["alerts_directory"] = data_dir
                storage_data["backup_directory"] = str(Path(data_dir) / "backups")

            return AlertsConfig(
                retention_seconds=data.get("retention_seconds", 30 * 60),
                cooldown_seconds=data.get("cooldown_seconds", 2 * 60),
                history_size=data.get("history_size", 50),
                detection=data.get("detection", {}),
                composite=data.get("composite", {}),
                storage=storage_data,
            )

        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid alerts configuration: {e}",
                file_path=self.config_dir / "alerts.yaml",
                cause=e,
            ) from e

    def _load_monitoring(self) -> MonitoringSettings:
        """Load scheduler settings from monitoring.yaml."""
        data = self._load_yaml("monitoring.yaml")
        try:
            return MonitoringSettings.model_validate(data.get("monitoring", {}))
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid monitoring configuration: {e}",
                file_path=self.config_dir / "monitoring.yaml",
                cause=e,
            ) from e

    def _load_opensky(self) -> OpenSkyConfig:
        """
        Load feed settings from opensky.yaml.

        Environment variables:
            - OPENSKY_CLIENT_ID: OAuth client id
            - OPENSKY_CLIENT_SECRET: OAuth client secret
        """
        data = self._load_yaml("opensky.yaml")
        try:
            opensky_data = dict(data.get("opensky", {}))
            client_id = os.getenv("OPENSKY_CLIENT_ID")
            client_secret = os.getenv("OPENSKY_CLIENT_SECRET")
            if client_id:
                opensky_data["client_id"] = client_id
            if client_secret:
                opensky_data["client_secret"] = client_secret
            return OpenSkyConfig.model_validate(opensky_data)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid opensky configuration: {e}",
                file_path=self.config_dir / "opensky.yaml",
                cause=e,
            ) from e

    def _load_system(self) -> Dict[str, Any]:
        """
        Load API, logging and data collection settings from system.yaml.

        Environment variables:
            - API_PORT: HTTP port
            - FLIGHTS_DATA_DIR: Flights directory
            - LOG_LEVEL: Log level (invalid values fall back to the file)
        """
        data = self._load_yaml("system.yaml")
        try:
            api_data = dict(data.get("api", {}))
            port = os.getenv("API_PORT")
            if port:
                api_data["port"] = port

            logging_data = dict(data.get("logging", {}))
            level_str = os.getenv("LOG_LEVEL")
            if level_str and level_str.upper() in LogLevel.__members__:
                logging_data["level"] = level_str.upper()

            collection_data = dict(data.get("data_collection", {}))
            flights_dir = os.getenv("FLIGHTS_DATA_DIR")
            if flights_dir:
                collection_data["flights_directory"] = flights_dir

            return {
                "name": data.get("name", "Ben Gurion Security Alerts System"),
                "api": ApiConfig.model_validate(api_data),
                "logging": LoggingConfig.model_validate(logging_data),
                "collection": CollectionSettings.model_validate(collection_data),
            }
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid system configuration: {e}",
                file_path=self.config_dir / "system.yaml",
                cause=e,
            ) from e

    def load(self) -> AppConfig:
        """
        Read every file and assemble the application config.

        Raises:
            ConfigLoadError: On the first missing or invalid file.
        """
        try:
            system = self._load_system()
            return AppConfig(
                name=system["name"],
                airport=self._load_airport(),
                alerts=self._load_alerts(),
                monitoring=self._load_monitoring(),
                opensky=self._load_opensky(),
                api=system["api"],
                logging=system["logging"],
                collection=system["collection"],
            )

        except ConfigLoadError:
            raise
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Load the configuration in ``config_dir``.

    Raises:
        ConfigLoadError: If any file is missing or invalid.
    """
    loader = ConfigLoader(config_dir)
    return loader.load()
