"""
Anomaly detection and alert lifecycle.

Components:
    geometry: Heading and great-circle helpers
    history: HistoryStore for rolling per-aircraft snapshots
    state: AlertStore holding the shared mutable alert state
    detectors: Detector classes and the DetectorRegistry
    manager: AlertManager for cooldowns, creation, composites and cleanup
    storage: AlertStorage for the JSON alert files
    writer: AlertWriter, the single writer for all storage writes

Example:
    >>> from airwatch.detection import (
    ...     AlertManager,
    ...     AlertStorage,
    ...     AlertStore,
    ...     AlertWriter,
    ...     DetectorRegistry,
    ... )
    >>> store = AlertStore.create(config.alerts.history_size)
    >>> storage = AlertStorage(config.alerts.storage, store)
    >>> writer = AlertWriter(storage)
    >>> manager = AlertManager(
    ...     store=store,
    ...     registry=DetectorRegistry.from_config(config.alerts.detection, config.airport),
    ...     config=config.alerts,
    ...     writer=writer,
    ... )
"""

from airwatch.detection.geometry import angle_diff, centroid, haversine_meters
from airwatch.detection.history import DEFAULT_HISTORY_SIZE, HistoryStore
from airwatch.detection.state import GLOBAL_KEY, AlertStore, build_cooldown_key
from airwatch.detection.detectors import (
    EMERGENCY_SQUAWKS,
    ApproachAbortDetector,
    Detector,
    DetectorRegistry,
    EmergencyCodeDetector,
    HoldingPatternDetector,
    NorthwardDiversionDetector,
    SharpTurnDetector,
    SuddenAltitudeChangeDetector,
    SuddenSpeedChangeDetector,
)
from airwatch.detection.manager import AlertManager
from airwatch.detection.storage import (
    AlertStorage,
    InvalidQueryError,
    StorageError,
    StorageInitError,
)
from airwatch.detection.writer import AlertWriter

__all__ = [
    # Geometry
    "angle_diff",
    "haversine_meters",
    "centroid",
    # History and state
    "DEFAULT_HISTORY_SIZE",
    "HistoryStore",
    "GLOBAL_KEY",
    "AlertStore",
    "build_cooldown_key",
    # Detectors
    "EMERGENCY_SQUAWKS",
    "Detector",
    "DetectorRegistry",
    "SharpTurnDetector",
    "HoldingPatternDetector",
    "NorthwardDiversionDetector",
    "ApproachAbortDetector",
    "EmergencyCodeDetector",
    "SuddenSpeedChangeDetector",
    "SuddenAltitudeChangeDetector",
    # Manager
    "AlertManager",
    # Storage
    "AlertStorage",
    "AlertWriter",
    "StorageError",
    "StorageInitError",
    "InvalidQueryError",
]
