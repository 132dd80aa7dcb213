"""Tests for the YAML configuration layer."""

import shutil
from pathlib import Path

import pytest
from pydantic import ValidationError

from airwatch.config.loader import ConfigLoader, ConfigLoadError, load_config
from airwatch.config.models import (
    AirportConfig,
    AlertsConfig,
    AppConfig,
    CollectionSettings,
    CompositeConfig,
    LogLevel,
    MonitoringSettings,
)

REPO_CONFIG = Path(__file__).parent.parent / "config"

ENV_VARS = (
    "ALERTS_DATA_DIR",
    "API_PORT",
    "FLIGHTS_DATA_DIR",
    "LOG_LEVEL",
    "OPENSKY_CLIENT_ID",
    "OPENSKY_CLIENT_SECRET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    target = tmp_path / "config"
    shutil.copytree(REPO_CONFIG, target)
    return target


class TestLoadConfig:
    """Loading the shipped configuration"""

    def test_loads_repository_config(self):
        config = load_config(REPO_CONFIG)

        assert config.airport.icao == "LLBG"
        assert config.alerts.cooldown_seconds == 120
        assert config.alerts.detection.emergency_codes.codes == [7700, 7600, 7500, 7400, 7777]
        assert config.alerts.storage.daily_file_prefix == "alerts_"
        assert config.monitoring.interval_seconds == 30
        assert config.opensky.auth_enabled is False
        assert config.collection.window_minutes == 5
        assert config.collection.flights_directory == "./data/flights"

    def test_alerts_data_dir_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("ALERTS_DATA_DIR", "/var/lib/airwatch")

        storage = load_config(config_dir).alerts.storage

        assert storage.alerts_directory == "/var/lib/airwatch"
        assert Path(storage.backup_directory) == Path("/var/lib/airwatch/backups")

    def test_flights_data_dir_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("FLIGHTS_DATA_DIR", "/srv/flights")

        collection = load_config(config_dir).collection

        assert collection.flights_directory == "/srv/flights"
        assert collection.emergency_directory == "./data/alerts"

    def test_port_and_log_level_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("API_PORT", "8088")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = load_config(config_dir)

        assert config.api.port == 8088
        assert config.logging.level == LogLevel.DEBUG

    def test_unknown_log_level_ignored(self, config_dir, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        config = load_config(config_dir)

        assert config.logging.level == LogLevel.INFO

    def test_opensky_credentials(self, config_dir, monkeypatch):
        monkeypatch.setenv("OPENSKY_CLIENT_ID", "client")
        monkeypatch.setenv("OPENSKY_CLIENT_SECRET", "secret")

        assert load_config(config_dir).opensky.auth_enabled is True


class TestLoadErrors:
    """Invalid or missing configuration"""

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="not found"):
            ConfigLoader(tmp_path / "nowhere")

    def test_path_is_a_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1")

        with pytest.raises(ConfigLoadError, match="not a directory"):
            ConfigLoader(path)

    def test_missing_file(self, config_dir):
        (config_dir / "alerts.yaml").unlink()

        with pytest.raises(ConfigLoadError) as exc_info:
            load_config(config_dir)
        assert exc_info.value.file_path == config_dir / "alerts.yaml"

    def test_invalid_yaml(self, config_dir):
        (config_dir / "monitoring.yaml").write_text("monitoring: [unclosed")

        with pytest.raises(ConfigLoadError, match="Invalid YAML"):
            load_config(config_dir)

    def test_empty_file(self, config_dir):
        (config_dir / "airport.yaml").write_text("")

        with pytest.raises(ConfigLoadError, match="empty"):
            load_config(config_dir)

    def test_not_a_mapping(self, config_dir):
        (config_dir / "opensky.yaml").write_text("- one\n- two\n")

        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(config_dir)

    def test_invalid_values(self, config_dir):
        (config_dir / "monitoring.yaml").write_text(
            "monitoring:\n  interval_seconds: -5\n"
        )

        with pytest.raises(ConfigLoadError, match="monitoring") as exc_info:
            load_config(config_dir)
        assert isinstance(exc_info.value.cause, ValidationError)

    def test_invalid_port_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("API_PORT", "99999")

        with pytest.raises(ConfigLoadError, match="system"):
            load_config(config_dir)


class TestModels:
    """Configuration model defaults and validation"""

    def test_defaults_are_usable(self):
        config = AppConfig()

        assert config.alerts.retention_seconds == 1800
        assert config.alerts.detection.holding_pattern.min_samples == 10
        assert config.alerts.composite.severity == "HIGH"
        assert config.monitoring.max_retries == 3

    def test_merged_settings(self):
        settings = MonitoringSettings().merged({"interval_seconds": 10})

        assert settings.interval_seconds == 10
        assert settings.retry_delay_seconds == 5

    def test_merged_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            MonitoringSettings().merged({"intervalSeconds": 10})

    def test_composite_severity_normalized(self):
        assert CompositeConfig(severity="critical").severity == "CRITICAL"
        with pytest.raises(ValidationError):
            CompositeConfig(severity="urgent")

    def test_holding_samples_must_fit_history(self):
        with pytest.raises(ValidationError):
            AlertsConfig.model_validate(
                {"history_size": 10, "detection": {"holding_pattern": {"min_samples": 20}}}
            )

    @pytest.mark.parametrize("size", [5, 51, 1000])
    def test_history_size_bounds(self, size):
        with pytest.raises(ValidationError):
            AlertsConfig(history_size=size)

    def test_history_size_upper_limit_accepted(self):
        assert AlertsConfig(history_size=50).history_size == 50

    def test_bounds_surround_airport(self):
        airport = AirportConfig()
        bounds = airport.get_bounds()

        assert bounds["south"] < airport.coordinates.latitude < bounds["north"]
        assert bounds["west"] < airport.coordinates.longitude < bounds["east"]
        assert bounds["north"] - bounds["south"] == pytest.approx(60 / 111)
        assert bounds["east"] - bounds["west"] > bounds["north"] - bounds["south"]

    @pytest.mark.parametrize("minutes", [0, 7, 90])
    def test_collection_window_divides_hour(self, minutes):
        with pytest.raises(ValidationError):
            CollectionSettings(window_minutes=minutes)
