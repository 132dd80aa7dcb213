"""
Aircraft telemetry models.

This module defines the immutable per-poll state of one aircraft as delivered
by a telemetry source. Field names are snake_case in Python and camelCase on
the wire (``altitudeFeet``, ``groundSpeedKnots``...).

Models:
    Position: Latitude, longitude and barometric altitude
    Movement: Ground speed, true track and vertical rate
    AircraftStatus: Ground flag and transponder squawk code
    AircraftSnapshot: One aircraft at one instant
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

WIRE_CONFIG = {
    "frozen": True,
    "extra": "forbid",
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class Position(BaseModel):
    """Geographic position of an aircraft."""

    model_config = WIRE_CONFIG

    latitude: float = Field(
        ...,
        description="Latitude in decimal degrees",
        ge=-90,
        le=90,
    )
    longitude: float = Field(
        ...,
        description="Longitude in decimal degrees",
        ge=-180,
        le=180,
    )
    altitude_feet: Optional[float] = Field(
        default=None,
        description="Barometric altitude in feet (None when unknown)",
    )


class Movement(BaseModel):
    """Velocity vector of an aircraft."""

    model_config = WIRE_CONFIG

    ground_speed_knots: float = Field(
        default=0.0,
        description="Ground speed in knots",
        ge=0,
    )
    heading_degrees: Optional[float] = Field(
        default=None,
        description="True track in degrees clockwise from north",
    )
    vertical_rate_fpm: float = Field(
        default=0.0,
        description="Vertical rate in feet per minute",
    )


class AircraftStatus(BaseModel):
    """Transponder and ground status."""

    model_config = WIRE_CONFIG

    on_ground: bool = Field(
        default=False,
        description="Whether the aircraft reports being on the ground",
    )
    squawk_code: Optional[int] = Field(
        default=None,
        description="Four-digit transponder code",
    )


class AircraftSnapshot(BaseModel):
    """
    State of a single aircraft at one poll.

    Snapshots are immutable once captured; history and alerts only ever hold
    snapshots or copies of their fields.

    Example:
        >>> snapshot = AircraftSnapshot(
        ...     icao24="4x1234",
        ...     callsign="ELY001",
        ...     timestamp=1700000000000,
        ...     position=Position(latitude=32.0, longitude=34.9, altitude_feet=3000),
        ...     movement=Movement(ground_speed_knots=180, heading_degrees=90),
        ... )
    """

    model_config = WIRE_CONFIG

    icao24: str = Field(
        ...,
        description="Unique ICAO 24-bit aircraft address (hex)",
        min_length=1,
    )
    callsign: Optional[str] = Field(
        default=None,
        description="Flight callsign, if broadcast",
    )
    origin_country: Optional[str] = Field(
        default=None,
        description="Country of registration",
    )
    timestamp: int = Field(
        ...,
        description="Capture time in epoch milliseconds",
        ge=0,
    )
    position: Position
    movement: Movement = Field(default_factory=Movement)
    status: AircraftStatus = Field(default_factory=AircraftStatus)

    @property
    def heading(self) -> Optional[float]:
        """Shortcut for the true track."""
        return self.movement.heading_degrees

    @property
    def display_name(self) -> str:
        """Callsign when available, otherwise the ICAO address."""
        return self.callsign or self.icao24
