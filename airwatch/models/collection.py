"""
File shapes for raw flight data collection.

Models:
    FlightCollection: One collection run (all aircraft of one fetch)
    FlightWindowFile: ``{collections, lastUpdated, totalCollections}``
    EmergencySquawk: Classified emergency transponder code
    EmergencyRecord: One aircraft seen squawking an emergency code
    EmergencyLogFile: ``{date, lastUpdated, alerts, totalAlerts}``
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from airwatch.models.aircraft import WIRE_CONFIG, AircraftSnapshot
from airwatch.models.alerts import AlertAircraft, AlertSeverity, EmergencyCodeType


class FlightCollection(BaseModel):
    """Aircraft captured by one collection run."""

    model_config = WIRE_CONFIG

    timestamp: int = Field(..., description="Collection time in epoch milliseconds", ge=0)
    collection_time: str = Field(..., description="Collection time, ISO-8601 UTC")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    aircraft: List[AircraftSnapshot] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)


class FlightWindowFile(BaseModel):
    """Every collection run that fell into one time window."""

    model_config = WIRE_CONFIG

    collections: List[FlightCollection] = Field(default_factory=list)
    last_updated: Optional[str] = None
    total_collections: int = Field(default=0, ge=0)


class EmergencySquawk(BaseModel):
    model_config = WIRE_CONFIG

    squawk_code: int
    type: EmergencyCodeType
    severity: AlertSeverity


class EmergencyRecord(BaseModel):
    """An aircraft seen squawking an emergency code during collection."""

    model_config = WIRE_CONFIG

    id: str
    timestamp: int = Field(..., ge=0)
    detection_time: str
    origin_country: Optional[str] = None
    aircraft: AlertAircraft
    emergency: EmergencySquawk


class EmergencyLogFile(BaseModel):
    """Emergency squawks seen on one UTC calendar day, in arrival order."""

    model_config = WIRE_CONFIG

    date: str = Field(..., description="Calendar day (YYYY-MM-DD)")
    last_updated: Optional[str] = None
    alerts: List[EmergencyRecord] = Field(default_factory=list)
    total_alerts: int = Field(default=0, ge=0)
