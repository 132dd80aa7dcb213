"""
Alert Monitor Service entry point.

This service is responsible for:
- Loading configuration from the YAML files
- Serving the alerts and monitoring API with uvicorn
- Initializing alert storage and background saving on startup
- Archiving and saving alerts on shutdown

Usage:
    python services/alert-monitor/main.py

Environment Variables:
    CONFIG_PATH: Path to config directory (default: config)
    LOG_LEVEL: Logging level (default: from system.yaml)
    ALERTS_DATA_DIR: Alerts directory (default: from alerts.yaml)
    OPENSKY_CLIENT_ID / OPENSKY_CLIENT_SECRET: OpenSky OAuth credentials
    API_PORT: HTTP port (default: from system.yaml)
"""

import os
import sys
from pathlib import Path

import structlog
import uvicorn

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from airwatch import __version__
from airwatch.api.app import create_app
from airwatch.config.loader import ConfigLoadError, load_config
from airwatch.services import AlertMonitoringService, setup_logging


def main() -> None:
    """
    Main entry point for the alert monitor service.

    Loads configuration, configures logging and starts the Uvicorn server
    with the FastAPI application.
    """
    setup_logging()
    logger = structlog.get_logger(__name__)

    config_path = os.getenv("CONFIG_PATH", "config")
    try:
        config = load_config(config_path)
    except ConfigLoadError as e:
        logger.error("config_load_failed", error=e.message, file=str(e.file_path))
        sys.exit(1)

    setup_logging(config.logging.level.value, config.logging.format)
    logger.info(
        "alert_monitor_service_starting",
        version=__version__,
        config_path=config_path,
        airport=config.airport.icao,
        python_version=sys.version,
    )

    app = create_app(AlertMonitoringService(config))

    uvicorn.run(
        app,
        host=config.api.host,
        port=config.api.port,
        log_level=config.logging.level.value.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
