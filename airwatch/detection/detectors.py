"""
Movement anomaly detectors.

This module provides the Detector base class, one subclass per per-aircraft
anomaly, and the DetectorRegistry that evaluates the enabled set.

Every detector is a pure function of the current snapshot, the aircraft's
history (oldest first, current snapshot last) and its own thresholds. A
detector returns a Detection or None and never touches the alert set,
cooldowns or storage; the AlertManager decides what becomes an Alert.

Detectors:
    SharpTurnDetector: Large heading change between consecutive samples
    HoldingPatternDetector: Slow loitering inside a small radius
    NorthwardDiversionDetector: Heading change ending in the north sector
    ApproachAbortDetector: Heading change low and close to the airport
    EmergencyCodeDetector: Emergency squawk codes
    SuddenSpeedChangeDetector: Large relative ground speed change
    SuddenAltitudeChangeDetector: Large absolute altitude change

Example:
    >>> registry = DetectorRegistry.from_config(config.alerts.detection, config.airport)
    >>> detections = registry.evaluate(current, history)
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from airwatch.config.models import (
    AirportConfig,
    ApproachAbortConfig,
    DetectionConfig,
    EmergencyCodesConfig,
    HoldingPatternConfig,
    NorthwardDiversionConfig,
    SharpTurnConfig,
    SuddenAltitudeChangeConfig,
    SuddenSpeedChangeConfig,
)
from airwatch.detection.geometry import angle_diff, centroid, haversine_meters
from airwatch.models.aircraft import AircraftSnapshot
from airwatch.models.alerts import AlertSeverity, AlertType, Detection, EmergencyCodeType

logger = structlog.get_logger(__name__)

History = Sequence[AircraftSnapshot]

# Squawk codes with a known meaning; other configured codes map to UNKNOWN
EMERGENCY_SQUAWKS: Dict[int, Tuple[EmergencyCodeType, AlertSeverity]] = {
    7500: (EmergencyCodeType.HIJACK, AlertSeverity.CRITICAL),
    7700: (EmergencyCodeType.EMERGENCY, AlertSeverity.HIGH),
    7600: (EmergencyCodeType.RADIO_FAILURE, AlertSeverity.MEDIUM),
}


class Detector(ABC):
    """
    Base class for per-aircraft detectors.

    Attributes:
        alert_type: Type of alert this detector produces.
        min_history: Minimum history length (including the current
            snapshot) required before the detector can fire.
        enabled: Whether the registry evaluates this detector.
    """

    alert_type: AlertType
    min_history: int = 2

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        """
        Evaluate the detector for one aircraft.

        Args:
            current: The aircraft's newest snapshot.
            history: The aircraft's history, current snapshot last.

        Returns:
            Optional[Detection]: The detection, or None if nothing fired.
        """
        if len(history) < self.min_history:
            return None
        return self._evaluate(current, history)

    @abstractmethod
    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        """Detector-specific logic; history length is already checked."""

    def _detection(self, severity: AlertSeverity, **details: object) -> Detection:
        return Detection(alert_type=self.alert_type, severity=severity, details=details)


def _previous(history: History) -> AircraftSnapshot:
    return history[-2]


def _within_window(current: AircraftSnapshot, previous: AircraftSnapshot, seconds: float) -> bool:
    return (current.timestamp - previous.timestamp) <= seconds * 1000


def _heading_change(current: AircraftSnapshot, previous: AircraftSnapshot) -> Optional[float]:
    if current.heading is None or previous.heading is None:
        return None
    return angle_diff(current.heading, previous.heading)


class SharpTurnDetector(Detector):
    """Heading change between consecutive samples within a time window."""

    alert_type = AlertType.SHARP_TURN

    def __init__(self, config: SharpTurnConfig) -> None:
        super().__init__(config.enabled)
        self.config = config

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        previous = _previous(history)
        if not _within_window(current, previous, self.config.time_window_seconds):
            return None

        change = _heading_change(current, previous)
        if change is None or change < self.config.min_angle_change:
            return None

        return self._detection(
            AlertSeverity.HIGH if change >= 90 else AlertSeverity.MEDIUM,
            previousHeading=previous.heading,
            currentHeading=current.heading,
            angleChange=round(change, 1),
            timeDiffSeconds=(current.timestamp - previous.timestamp) / 1000,
        )


class HoldingPatternDetector(Detector):
    """
    Slow, confined movement with a lot of accumulated turning.

    Sums the unsigned heading deltas of consecutive samples rather than the
    net signed rotation, so back-and-forth weaving inside the radius also
    qualifies.
    """

    alert_type = AlertType.HOLDING_PATTERN

    def __init__(self, config: HoldingPatternConfig) -> None:
        super().__init__(config.enabled)
        self.config = config
        self.min_history = config.min_samples

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        recent = list(history[-self.config.min_samples:])

        center_lat, center_lon = centroid(
            (s.position.latitude, s.position.longitude) for s in recent
        )
        max_distance = max(
            haversine_meters(center_lat, center_lon, s.position.latitude, s.position.longitude)
            for s in recent
        )
        if max_distance > self.config.max_radius_meters:
            return None

        average_speed = sum(s.movement.ground_speed_knots for s in recent) / len(recent)
        if average_speed > self.config.max_speed_knots:
            return None

        total_turn = 0.0
        for earlier, later in zip(recent, recent[1:]):
            change = _heading_change(later, earlier)
            if change is not None:
                total_turn += change
        if total_turn < self.config.min_circular_movement:
            return None

        return self._detection(
            AlertSeverity.MEDIUM,
            centerLatitude=round(center_lat, 6),
            centerLongitude=round(center_lon, 6),
            maxRadiusMeters=round(max_distance, 1),
            averageSpeedKnots=round(average_speed, 1),
            totalHeadingChange=round(total_turn, 1),
            samples=len(recent),
            durationSeconds=(recent[-1].timestamp - recent[0].timestamp) / 1000,
        )


class NorthwardDiversionDetector(Detector):
    """Heading change that ends inside the wrap-around north sector."""

    alert_type = AlertType.NORTHWARD_DIVERSION

    def __init__(self, config: NorthwardDiversionConfig) -> None:
        super().__init__(config.enabled)
        self.config = config

    def in_sector(self, heading: float) -> bool:
        """Check ``heading`` against ``[sector_min, 360) ∪ [0, sector_max]``."""
        heading = heading % 360
        return heading >= self.config.sector_min or heading <= self.config.sector_max

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        previous = _previous(history)
        change = _heading_change(current, previous)
        if change is None or change < self.config.min_angle_change:
            return None
        if not self.in_sector(current.heading):  # type: ignore[arg-type]
            return None

        return self._detection(
            AlertSeverity.HIGH,
            previousHeading=previous.heading,
            currentHeading=current.heading,
            angleChange=round(change, 1),
        )


class ApproachAbortDetector(Detector):
    """Heading deviation while low and close to the airport."""

    alert_type = AlertType.APPROACH_ABORT

    def __init__(self, config: ApproachAbortConfig, airport: AirportConfig) -> None:
        super().__init__(config.enabled)
        self.config = config
        self.airport = airport

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        altitude = current.position.altitude_feet
        if altitude is None or altitude > self.config.max_approach_altitude_feet:
            return None

        distance = haversine_meters(
            self.airport.coordinates.latitude,
            self.airport.coordinates.longitude,
            current.position.latitude,
            current.position.longitude,
        )
        if distance > self.config.airport_radius_meters:
            return None

        change = _heading_change(current, _previous(history))
        if change is None or change < self.config.min_deviation_angle:
            return None

        return self._detection(
            AlertSeverity.HIGH,
            distanceToAirportMeters=round(distance, 1),
            altitudeFeet=altitude,
            angleChange=round(change, 1),
            verticalRateFpm=current.movement.vertical_rate_fpm,
            airport=self.airport.icao,
        )


class EmergencyCodeDetector(Detector):
    """Configured emergency squawk codes; needs only the current snapshot."""

    alert_type = AlertType.EMERGENCY_CODE
    min_history = 1

    def __init__(self, config: EmergencyCodesConfig) -> None:
        super().__init__(config.enabled)
        self.config = config
        self._codes = frozenset(config.codes)

    @staticmethod
    def classify(code: int) -> Tuple[EmergencyCodeType, AlertSeverity]:
        """Semantic type and severity of a squawk code."""
        return EMERGENCY_SQUAWKS.get(code, (EmergencyCodeType.UNKNOWN, AlertSeverity.MEDIUM))

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        code = current.status.squawk_code
        if code is None or code not in self._codes:
            return None

        code_type, severity = self.classify(code)
        return self._detection(
            severity,
            squawkCode=code,
            codeType=code_type.value,
        )


class SuddenSpeedChangeDetector(Detector):
    """Relative ground speed change against the previous sample."""

    alert_type = AlertType.SUDDEN_SPEED_CHANGE

    def __init__(self, config: SuddenSpeedChangeConfig) -> None:
        super().__init__(config.enabled)
        self.config = config

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        previous = _previous(history)
        if not _within_window(current, previous, self.config.time_window_seconds):
            return None

        previous_speed = previous.movement.ground_speed_knots
        if previous_speed <= 0:
            return None

        current_speed = current.movement.ground_speed_knots
        change_pct = abs(current_speed - previous_speed) / previous_speed * 100
        if change_pct < self.config.min_change_percent:
            return None

        severity = (
            AlertSeverity.HIGH
            if change_pct >= 2 * self.config.min_change_percent
            else AlertSeverity.MEDIUM
        )
        return self._detection(
            severity,
            previousSpeedKnots=previous_speed,
            currentSpeedKnots=current_speed,
            changePercent=round(change_pct, 1),
            timeDiffSeconds=(current.timestamp - previous.timestamp) / 1000,
        )


class SuddenAltitudeChangeDetector(Detector):
    """Absolute altitude change against the previous sample."""

    alert_type = AlertType.SUDDEN_ALTITUDE_CHANGE

    def __init__(self, config: SuddenAltitudeChangeConfig) -> None:
        super().__init__(config.enabled)
        self.config = config

    def _evaluate(self, current: AircraftSnapshot, history: History) -> Optional[Detection]:
        previous = _previous(history)
        if not _within_window(current, previous, self.config.time_window_seconds):
            return None

        previous_alt = previous.position.altitude_feet
        current_alt = current.position.altitude_feet
        if previous_alt is None or current_alt is None:
            return None

        change = current_alt - previous_alt
        if abs(change) < self.config.min_change_feet:
            return None

        severity = (
            AlertSeverity.HIGH
            if abs(change) >= 2 * self.config.min_change_feet
            else AlertSeverity.MEDIUM
        )
        return self._detection(
            severity,
            previousAltitudeFeet=previous_alt,
            currentAltitudeFeet=current_alt,
            altitudeChangeFeet=change,
            timeDiffSeconds=(current.timestamp - previous.timestamp) / 1000,
        )


class DetectorRegistry:
    """
    Ordered set of detectors evaluated for every aircraft.

    Detectors can be switched on or off at runtime by alert type; disabled
    detectors are skipped.

    Example:
        >>> registry = DetectorRegistry.from_config(detection, airport)
        >>> registry.disable(AlertType.SHARP_TURN)
        >>> [d.alert_type for d in registry.enabled_detectors()]
    """

    def __init__(self, detectors: List[Detector]) -> None:
        self._detectors: Dict[AlertType, Detector] = {}
        for detector in detectors:
            self.register(detector)

    @classmethod
    def from_config(cls, detection: DetectionConfig, airport: AirportConfig) -> "DetectorRegistry":
        """Build the standard detector set from configuration."""
        return cls(
            [
                SharpTurnDetector(detection.sharp_turn),
                HoldingPatternDetector(detection.holding_pattern),
                NorthwardDiversionDetector(detection.northward_diversion),
                ApproachAbortDetector(detection.approach_abort, airport),
                EmergencyCodeDetector(detection.emergency_codes),
                SuddenSpeedChangeDetector(detection.sudden_speed_change),
                SuddenAltitudeChangeDetector(detection.sudden_altitude_change),
            ]
        )

    def register(self, detector: Detector) -> None:
        """Add or replace the detector for its alert type."""
        self._detectors[detector.alert_type] = detector

    def get(self, alert_type: AlertType) -> Optional[Detector]:
        return self._detectors.get(alert_type)

    def enable(self, alert_type: AlertType) -> bool:
        return self._set_enabled(alert_type, True)

    def disable(self, alert_type: AlertType) -> bool:
        return self._set_enabled(alert_type, False)

    def _set_enabled(self, alert_type: AlertType, enabled: bool) -> bool:
        detector = self._detectors.get(alert_type)
        if detector is None:
            return False
        detector.enabled = enabled
        logger.info("detector_toggled", alert_type=alert_type.value, enabled=enabled)
        return True

    def enabled_detectors(self) -> List[Detector]:
        return [d for d in self._detectors.values() if d.enabled]

    def describe(self) -> List[Dict[str, object]]:
        """Registered detectors with their enabled flag and history needs."""
        return [
            {
                "type": d.alert_type.value,
                "enabled": d.enabled,
                "minHistory": d.min_history,
            }
            for d in self._detectors.values()
        ]

    def evaluate(self, current: AircraftSnapshot, history: History) -> List[Detection]:
        """
        Run every enabled detector for one aircraft.

        A detector that raises is logged and skipped so that one malformed
        snapshot cannot abort the whole pass.

        Returns:
            List[Detection]: Detections in registry order.
        """
        detections: List[Detection] = []
        for detector in self.enabled_detectors():
            try:
                detection = detector.evaluate(current, history)
            except Exception as e:
                logger.error(
                    "detector_failed",
                    alert_type=detector.alert_type.value,
                    icao24=current.icao24,
                    error=str(e),
                )
                continue
            if detection is not None:
                detections.append(detection)
        return detections
