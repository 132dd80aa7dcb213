"""
Shared Pydantic data models for the airspace monitor.

Modules:
    aircraft: Aircraft telemetry snapshots
    alerts: Alert enums, detections and alert records
    storage: On-disk alert file shapes
    collection: Flights window and emergency log file shapes
    monitoring: Scheduler state, fetch and analysis results

Example:
    >>> from airwatch.models import AircraftSnapshot, Alert, AlertSeverity
"""

# Aircraft models
from airwatch.models.aircraft import (
    AircraftSnapshot,
    AircraftStatus,
    Movement,
    Position,
)

# Alert models
from airwatch.models.alerts import (
    Alert,
    AlertAircraft,
    AlertSeverity,
    AlertType,
    Detection,
    EmergencyCodeType,
    generate_alert_id,
)

# Storage file models
from airwatch.models.storage import (
    CurrentAlertsFile,
    DailyAlertsFile,
    HistoricalAlertsFile,
)

# Collection file models
from airwatch.models.collection import (
    EmergencyLogFile,
    EmergencyRecord,
    EmergencySquawk,
    FlightCollection,
    FlightWindowFile,
)

# Monitoring models
from airwatch.models.monitoring import (
    AnalysisResult,
    FetchResult,
    MonitoringStats,
    SchedulerState,
)

__all__ = [
    # Aircraft
    "Position",
    "Movement",
    "AircraftStatus",
    "AircraftSnapshot",
    # Alerts
    "AlertType",
    "AlertSeverity",
    "EmergencyCodeType",
    "Detection",
    "AlertAircraft",
    "Alert",
    "generate_alert_id",
    # Storage
    "CurrentAlertsFile",
    "DailyAlertsFile",
    "HistoricalAlertsFile",
    # Collection
    "FlightCollection",
    "FlightWindowFile",
    "EmergencySquawk",
    "EmergencyRecord",
    "EmergencyLogFile",
    # Monitoring
    "SchedulerState",
    "FetchResult",
    "AnalysisResult",
    "MonitoringStats",
]
