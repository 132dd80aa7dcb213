"""
Alert manager for the alert lifecycle.

This module provides the AlertManager class which turns detector output into
alerts: cooldown gating, alert creation, fleet-level checks, composite
synthesis and retention cleanup.

Key Features:
    - Per-aircraft cooldown keyed by ``(type, icao24)``; fleet-level and
      composite alerts use the ``global`` key
    - Alerts copy aircraft fields and never reference the live history
    - HIGH and CRITICAL alerts request an immediate save from the writer
    - Fleet-level checks: multiple diversions and traffic stop
    - Composite SECURITY_ALERT when enough alerts pile up in a window
    - Retention cleanup of alerts, history, cooldowns and traffic samples

Example:
    >>> manager = AlertManager(store, registry, config.alerts, writer)
    >>> result = manager.process_snapshots(snapshots)
    >>> result.total_new_alerts
    2
"""

from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import structlog

from airwatch.clock import now_ms
from airwatch.config.models import AlertsConfig
from airwatch.detection.detectors import DetectorRegistry
from airwatch.detection.state import AlertStore, build_cooldown_key
from airwatch.models.aircraft import AircraftSnapshot
from airwatch.models.alerts import (
    Alert,
    AlertAircraft,
    AlertSeverity,
    AlertType,
    generate_alert_id,
)
from airwatch.models.monitoring import AnalysisResult

if TYPE_CHECKING:
    from airwatch.detection.writer import AlertWriter

logger = structlog.get_logger(__name__)


class AlertManager:
    """
    Orchestrates alert creation and expiry.

    The manager owns no collections of its own; everything lives in the
    AlertStore it is given, which the storage layer shares.

    Attributes:
        store: Shared alert set, cooldowns, history and traffic samples.
        registry: Detectors evaluated for every aircraft.
        config: Alert lifecycle, fleet and composite configuration.
        writer: Single-writer persistence queue, None to disable saves.

    Example:
        >>> manager = AlertManager(
        ...     store=AlertStore.create(50),
        ...     registry=DetectorRegistry.from_config(detection, airport),
        ...     config=alerts_config,
        ... )
        >>> manager.can_send(AlertType.SHARP_TURN, "4x7abc")
        True
    """

    def __init__(
        self,
        store: AlertStore,
        registry: DetectorRegistry,
        config: AlertsConfig,
        writer: Optional["AlertWriter"] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.config = config
        self.writer = writer

        logger.info(
            "alert_manager_initialized",
            detectors=[d.alert_type.value for d in registry.enabled_detectors()],
            cooldown_seconds=config.cooldown_seconds,
            retention_seconds=config.retention_seconds,
            composite_enabled=config.composite.enabled,
        )

    @property
    def cooldown_ms(self) -> int:
        return int(self.config.cooldown_seconds * 1000)

    @property
    def retention_ms(self) -> int:
        return int(self.config.retention_seconds * 1000)

    # =========================================================================
    # COOLDOWN AND CREATION
    # =========================================================================

    def can_send(
        self,
        alert_type: AlertType,
        aircraft_id: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> bool:
        """
        Check the cooldown for an alert key.

        Args:
            alert_type: Alert type to check.
            aircraft_id: Aircraft scope, None for the global key.
            timestamp: Current time in epoch ms (defaults to now).

        Returns:
            bool: True if the key never fired or fired at least
                ``cooldown_seconds`` ago.
        """
        if timestamp is None:
            timestamp = now_ms()

        last_fired = self.store.cooldowns.get(build_cooldown_key(alert_type, aircraft_id))
        if last_fired is None:
            return True
        return timestamp - last_fired >= self.cooldown_ms

    def create_alert(
        self,
        alert_type: AlertType,
        severity: AlertSeverity,
        snapshot: Optional[AircraftSnapshot],
        details: Dict[str, Any],
        timestamp: Optional[int] = None,
    ) -> Alert:
        """
        Create an alert, append it to the alert set and update its cooldown.

        HIGH and CRITICAL alerts request an immediate save; the request never
        blocks and a failed save does not undo the alert.

        Args:
            alert_type: Alert type.
            severity: Alert severity.
            snapshot: Aircraft the alert is about, None for fleet-level and
                composite alerts.
            details: Detector payload.
            timestamp: Creation time in epoch ms (defaults to now).

        Returns:
            Alert: The created alert.
        """
        if timestamp is None:
            timestamp = now_ms()

        alert = Alert(
            id=generate_alert_id(alert_type, timestamp),
            type=alert_type,
            severity=severity,
            timestamp=timestamp,
            aircraft=AlertAircraft.from_snapshot(snapshot) if snapshot else None,
            details=dict(details),
        )

        self.store.alerts.append(alert)
        self.store.cooldowns[build_cooldown_key(alert_type, alert.aircraft_id)] = timestamp

        logger.info(
            "alert_created",
            alert_id=alert.id,
            alert_type=alert_type.value,
            severity=severity.value,
            icao24=alert.aircraft_id,
        )

        if severity.is_urgent and self.writer is not None:
            self.writer.request(f"{alert_type.value.lower()}_alert")

        return alert

    # =========================================================================
    # ANALYSIS PASS
    # =========================================================================

    def process_snapshots(
        self,
        snapshots: Sequence[AircraftSnapshot],
        timestamp: Optional[int] = None,
    ) -> AnalysisResult:
        """
        Run one analysis pass over a batch of snapshots.

        Each snapshot is appended to its aircraft's history and evaluated by
        every enabled detector; detections that pass the cooldown become
        alerts. Fleet-level checks and composite synthesis follow, then
        expired state is cleaned up.

        Args:
            snapshots: Snapshots from one telemetry fetch.
            timestamp: Pass time in epoch ms (defaults to now).

        Returns:
            AnalysisResult: Aircraft analyzed and alerts created.
        """
        if timestamp is None:
            timestamp = now_ms()

        new_alerts: List[Alert] = []

        for snapshot in snapshots:
            history = self.store.history.update(snapshot)
            for detection in self.registry.evaluate(snapshot, history):
                if not self.can_send(detection.alert_type, snapshot.icao24, timestamp):
                    logger.debug(
                        "alert_suppressed",
                        alert_type=detection.alert_type.value,
                        icao24=snapshot.icao24,
                    )
                    continue
                new_alerts.append(
                    self.create_alert(
                        detection.alert_type,
                        detection.severity,
                        snapshot,
                        detection.details,
                        timestamp,
                    )
                )

        new_alerts.extend(self._check_fleet(snapshots, timestamp))

        if new_alerts:
            composite = self._synthesize_composite(timestamp)
            if composite is not None:
                new_alerts.append(composite)

        self.cleanup(timestamp)

        if new_alerts:
            logger.info(
                "analysis_completed",
                aircraft_analyzed=len(snapshots),
                new_alerts=len(new_alerts),
            )
        return AnalysisResult(aircraft_analyzed=len(snapshots), new_alerts=new_alerts)

    def _check_fleet(
        self, snapshots: Sequence[AircraftSnapshot], timestamp: int
    ) -> List[Alert]:
        created: List[Alert] = []
        detection = self.config.detection

        if detection.multiple_diversions.enabled:
            alert = self._check_multiple_diversions(timestamp)
            if alert is not None:
                created.append(alert)

        airborne = sum(1 for s in snapshots if not s.status.on_ground)
        if detection.traffic_stop.enabled:
            alert = self._check_traffic_stop(airborne, timestamp)
            if alert is not None:
                created.append(alert)
        self.store.traffic_samples.append((timestamp, airborne))

        return created

    def _check_multiple_diversions(self, timestamp: int) -> Optional[Alert]:
        settings = self.config.detection.multiple_diversions
        window_start = timestamp - int(settings.time_window_seconds * 1000)

        aircraft = sorted(
            {
                a.aircraft_id
                for a in self.store.alerts
                if a.type == AlertType.NORTHWARD_DIVERSION
                and a.timestamp >= window_start
                and a.aircraft_id
            }
        )
        if len(aircraft) < settings.min_aircraft:
            return None
        if not self.can_send(AlertType.MULTIPLE_DIVERSIONS, timestamp=timestamp):
            return None

        return self.create_alert(
            AlertType.MULTIPLE_DIVERSIONS,
            AlertSeverity.HIGH,
            None,
            {
                "aircraftCount": len(aircraft),
                "aircraft": aircraft,
                "timeWindowSeconds": settings.time_window_seconds,
            },
            timestamp,
        )

    def _check_traffic_stop(self, airborne: int, timestamp: int) -> Optional[Alert]:
        settings = self.config.detection.traffic_stop
        window_start = timestamp - int(settings.time_window_seconds * 1000)

        previous = [count for ts, count in self.store.traffic_samples if ts >= window_start]
        if not previous:
            return None

        baseline = max(previous)
        if baseline < settings.min_baseline_aircraft:
            return None

        reduction = (baseline - airborne) / baseline * 100
        if reduction < settings.min_reduction_percent:
            return None
        if not self.can_send(AlertType.TRAFFIC_STOP, timestamp=timestamp):
            return None

        return self.create_alert(
            AlertType.TRAFFIC_STOP,
            AlertSeverity.CRITICAL,
            None,
            {
                "previousCount": baseline,
                "currentCount": airborne,
                "reductionPercent": round(reduction, 1),
                "timeWindowSeconds": settings.time_window_seconds,
            },
            timestamp,
        )

    def _synthesize_composite(self, timestamp: int) -> Optional[Alert]:
        """
        Create a SECURITY_ALERT when enough alerts fall in the composite window.

        Only non-composite alerts are counted. The composite itself is gated
        by the global cooldown of its type.
        """
        settings = self.config.composite
        if not settings.enabled:
            return None

        window_start = timestamp - int(settings.time_window_seconds * 1000)
        recent = [
            a
            for a in self.store.alerts
            if a.timestamp >= window_start and not a.type.is_composite
        ]
        if len(recent) < settings.min_events:
            return None
        if not self.can_send(AlertType.SECURITY_ALERT, timestamp=timestamp):
            return None

        return self.create_alert(
            AlertType.SECURITY_ALERT,
            AlertSeverity(settings.severity),
            None,
            {
                "alertCount": len(recent),
                "severityBreakdown": dict(Counter(a.severity.value for a in recent)),
                "typeBreakdown": dict(Counter(a.type.value for a in recent)),
                "distinctAircraftCount": len(
                    {a.aircraft_id for a in recent if a.aircraft_id}
                ),
                "timeWindowSeconds": settings.time_window_seconds,
            },
            timestamp,
        )

    # =========================================================================
    # CLEANUP
    # =========================================================================

    def cleanup(self, timestamp: Optional[int] = None) -> int:
        """
        Drop expired state.

        Removes alerts older than the retention time, history older than
        twice the retention time, cooldown entries that no longer suppress
        anything and traffic samples outside the traffic-stop window.

        Args:
            timestamp: Current time in epoch ms (defaults to now).

        Returns:
            int: Number of alerts removed.
        """
        if timestamp is None:
            timestamp = now_ms()

        before = len(self.store.alerts)
        self.store.replace_alerts(
            [a for a in self.store.alerts if a.age_ms(timestamp) <= self.retention_ms]
        )
        removed = before - len(self.store.alerts)

        self.store.history.prune(timestamp - 2 * self.retention_ms)

        expired_keys = [
            key
            for key, fired in self.store.cooldowns.items()
            if timestamp - fired >= self.cooldown_ms
        ]
        for key in expired_keys:
            del self.store.cooldowns[key]

        traffic_window = int(self.config.detection.traffic_stop.time_window_seconds * 1000)
        samples = self.store.traffic_samples
        while samples and samples[0][0] < timestamp - traffic_window:
            samples.popleft()

        if removed:
            logger.info("alerts_expired", removed=removed, remaining=len(self.store.alerts))
        return removed

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_all(self) -> List[Alert]:
        return list(self.store.alerts)

    def get_active(self) -> List[Alert]:
        return [a for a in self.store.alerts if a.active]

    def get_by_type(self, alert_type: AlertType) -> List[Alert]:
        return [a for a in self.store.alerts if a.type == alert_type]

    def get_by_severity(self, severity: AlertSeverity) -> List[Alert]:
        return [a for a in self.store.alerts if a.severity == severity]

    def filter(
        self,
        alerts: Sequence[Alert],
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        active: Optional[bool] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Alert]:
        """
        Filter alerts and return them newest first.

        Args:
            alerts: Alerts to filter.
            alert_type: Keep only this type.
            severity: Keep only this severity.
            active: Keep only alerts with this active flag.
            since: Keep only alerts created at or after this epoch ms.
            limit: Maximum number of alerts returned.

        Returns:
            List[Alert]: Matching alerts, newest first.
        """
        matched = [
            a
            for a in alerts
            if (alert_type is None or a.type == alert_type)
            and (severity is None or a.severity == severity)
            and (active is None or a.active == active)
            and (since is None or a.timestamp >= since)
        ]
        matched.sort(key=lambda a: a.timestamp, reverse=True)
        if limit is not None:
            matched = matched[:limit]
        return matched

    def stats(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """Counts of the in-memory alert set by type, severity and age."""
        if timestamp is None:
            timestamp = now_ms()

        alerts = self.store.alerts
        timestamps = [a.timestamp for a in alerts]
        return {
            "total": len(alerts),
            "active": sum(1 for a in alerts if a.active),
            "byType": dict(Counter(a.type.value for a in alerts)),
            "bySeverity": dict(Counter(a.severity.value for a in alerts)),
            "lastHour": sum(1 for a in alerts if a.age_ms(timestamp) <= 3600 * 1000),
            "trackedAircraft": len(self.store.history),
            "oldestTimestamp": min(timestamps) if timestamps else None,
            "newestTimestamp": max(timestamps) if timestamps else None,
        }

    def reset(self) -> None:
        """Forget alerts and cooldowns."""
        self.store.reset()
        logger.info("alert_state_reset")
