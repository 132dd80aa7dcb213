"""
Alert data models for the airspace monitor.

This module defines alert classification enums, detector output, and the
persisted alert record.

Models:
    AlertType: Kind of anomaly an alert reports
    AlertSeverity: Severity levels (LOW, MEDIUM, HIGH, CRITICAL)
    EmergencyCodeType: Semantic meaning of an emergency squawk
    Detection: Output of a detector before cooldown gating
    AlertAircraft: Frozen copy of the aircraft fields carried by an alert
    Alert: A created alert instance
"""

from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from airwatch.models.aircraft import (
    WIRE_CONFIG,
    AircraftSnapshot,
    Movement,
    Position,
)


class AlertType(str, Enum):
    """
    Alert types.

    Per-aircraft types are produced by detectors; MULTIPLE_DIVERSIONS,
    TRAFFIC_STOP and SECURITY_ALERT are synthesized from the alert set and
    carry no aircraft.
    """

    SHARP_TURN = "SHARP_TURN"
    HOLDING_PATTERN = "HOLDING_PATTERN"
    NORTHWARD_DIVERSION = "NORTHWARD_DIVERSION"
    APPROACH_ABORT = "APPROACH_ABORT"
    EMERGENCY_CODE = "EMERGENCY_CODE"
    SUDDEN_SPEED_CHANGE = "SUDDEN_SPEED_CHANGE"
    SUDDEN_ALTITUDE_CHANGE = "SUDDEN_ALTITUDE_CHANGE"
    MULTIPLE_DIVERSIONS = "MULTIPLE_DIVERSIONS"
    TRAFFIC_STOP = "TRAFFIC_STOP"
    SECURITY_ALERT = "SECURITY_ALERT"

    @property
    def is_composite(self) -> bool:
        """Check if this type is synthesized from other alerts."""
        return self == AlertType.SECURITY_ALERT


class AlertSeverity(str, Enum):
    """
    Alert severity levels.

    Attributes:
        LOW: Informational.
        MEDIUM: Unusual movement worth a look.
        HIGH: Likely abnormal; triggers an immediate save.
        CRITICAL: Immediate attention; triggers an immediate save.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def is_urgent(self) -> bool:
        """Check if this severity requires an immediate durable save."""
        return self in (AlertSeverity.HIGH, AlertSeverity.CRITICAL)


class EmergencyCodeType(str, Enum):
    """Semantic meaning of an emergency squawk code."""

    HIJACK = "HIJACK"
    RADIO_FAILURE = "RADIO_FAILURE"
    EMERGENCY = "EMERGENCY"
    UNKNOWN = "UNKNOWN"


class Detection(BaseModel):
    """
    Result of a detector that fired.

    Detectors are pure: they return a Detection and never touch the alert
    set. The AlertManager decides whether it becomes an Alert.

    Attributes:
        alert_type: Type of the alert to create.
        severity: Severity chosen by the detector.
        details: Detector-specific payload (camelCase keys).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    alert_type: AlertType
    severity: AlertSeverity
    details: Dict[str, Any] = Field(default_factory=dict)


class AlertAircraft(BaseModel):
    """Identity, position and movement copied from a snapshot."""

    model_config = WIRE_CONFIG

    icao24: str
    callsign: Optional[str] = None
    position: Position
    movement: Movement

    @classmethod
    def from_snapshot(cls, snapshot: AircraftSnapshot) -> "AlertAircraft":
        """Copy the alert-relevant fields out of a snapshot."""
        return cls(
            icao24=snapshot.icao24,
            callsign=snapshot.callsign,
            position=snapshot.position.model_copy(),
            movement=snapshot.movement.model_copy(),
        )


def generate_alert_id(alert_type: AlertType, timestamp: int) -> str:
    """Build a unique alert id from type, timestamp and a random suffix."""
    return f"{alert_type.value}_{timestamp}_{uuid4().hex[:9]}"


class Alert(BaseModel):
    """
    A created alert.

    Alerts are frozen after creation. ``active`` is set at creation and is
    not cleared by any operation; an alert leaves the in-memory set only via
    retention cleanup or archival pruning.

    Attributes:
        id: Unique identifier (type, timestamp, random suffix).
        type: Alert type.
        severity: Alert severity.
        timestamp: Creation time in epoch milliseconds.
        aircraft: Copy of the aircraft fields, None for synthesized alerts.
        details: Detector-specific payload.
        active: Always True for created alerts.

    Example:
        >>> alert = Alert(
        ...     id="SHARP_TURN_1700000000000_a1b2c3d4e",
        ...     type=AlertType.SHARP_TURN,
        ...     severity=AlertSeverity.MEDIUM,
        ...     timestamp=1700000000000,
        ...     details={"angleChange": 45.0},
        ... )
    """

    model_config = WIRE_CONFIG

    id: str = Field(..., min_length=1)
    type: AlertType
    severity: AlertSeverity
    timestamp: int = Field(..., ge=0)
    aircraft: Optional[AlertAircraft] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    active: bool = True

    @property
    def aircraft_id(self) -> Optional[str]:
        """ICAO address of the alert's aircraft, if any."""
        return self.aircraft.icao24 if self.aircraft else None

    def age_ms(self, now: int) -> int:
        """Milliseconds elapsed since creation."""
        return now - self.timestamp

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase record."""
        return self.model_dump(mode="json", by_alias=True)
