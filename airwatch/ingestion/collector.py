"""
Raw flight data collection.

This module provides the FlightDataCollector class which periodically
fetches every aircraft around the airport and appends the raw snapshots to
time-window files, independently of alert detection.

Layout (directories configurable):
    <flights_directory>/flights-YYYY-MM-DD_HH-MM.json      One file per window
    <emergency_directory>/emergency-alerts-YYYY-MM-DD.json  Emergency squawks

Windows are UTC and ``window_minutes`` wide; a run at 10:07 with 5-minute
windows lands in ``flights-..._10-05.json``. Files are append-only: each run
adds one entry to ``collections``.

Example:
    >>> collector = FlightDataCollector(source, config.collection)
    >>> await collector.start()
    >>> collector.status()["successRate"]
    100
    >>> await collector.stop()
"""

import asyncio
import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from airwatch.clock import day_key, iso_from_ms, ms_to_datetime, now_ms
from airwatch.config.models import CollectionSettings
from airwatch.detection.detectors import EMERGENCY_SQUAWKS
from airwatch.detection.storage import StorageError
from airwatch.interfaces.telemetry_source import TelemetrySource
from airwatch.models.aircraft import AircraftSnapshot
from airwatch.models.alerts import AlertAircraft
from airwatch.models.collection import (
    EmergencyLogFile,
    EmergencyRecord,
    EmergencySquawk,
    FlightCollection,
    FlightWindowFile,
)
from airwatch.models.monitoring import FetchResult

logger = structlog.get_logger(__name__)

FileModel = TypeVar("FileModel", bound=BaseModel)

FETCH_STEP = "fetch"
WRITE_STEP = "write"


def window_filename(timestamp_ms: int, window_minutes: int = 5) -> str:
    """Name of the flights file whose window contains ``timestamp_ms``."""
    moment = ms_to_datetime(timestamp_ms)
    minute = moment.minute // window_minutes * window_minutes
    return f"flights-{moment:%Y-%m-%d_%H}-{minute:02d}.json"


def emergency_log_filename(timestamp_ms: int) -> str:
    return f"emergency-alerts-{day_key(timestamp_ms)}.json"


def detect_emergencies(
    snapshots: Sequence[AircraftSnapshot], timestamp: int
) -> List[EmergencyRecord]:
    """
    Pick out aircraft squawking hijack, radio failure or general emergency.

    Unlike the EMERGENCY_CODE detector this has no cooldown: every run that
    sees the code logs it again.
    """
    records = []
    for snapshot in snapshots:
        code = snapshot.status.squawk_code
        if code not in EMERGENCY_SQUAWKS:
            continue
        code_type, severity = EMERGENCY_SQUAWKS[code]
        records.append(
            EmergencyRecord(
                id=f"{snapshot.icao24}_{code}_{timestamp}",
                timestamp=timestamp,
                detection_time=iso_from_ms(timestamp),
                origin_country=snapshot.origin_country,
                aircraft=AlertAircraft.from_snapshot(snapshot),
                emergency=EmergencySquawk(squawk_code=code, type=code_type, severity=severity),
            )
        )
    return records


@dataclass
class CollectionStats:
    """
    Run statistics of the collector.

    Attributes:
        total_runs: Runs attempted, scheduled or triggered.
        successful_runs: Runs that wrote a flights entry.
        last_run: Start of the latest run (epoch ms).
        last_success: End of the latest successful run (epoch ms).
        last_error: ``{"timestamp", "message"}`` of the latest failure,
            cleared by the next success.
        file_writes: Flights entries appended.
    """

    total_runs: int = 0
    successful_runs: int = 0
    last_run: Optional[int] = None
    last_success: Optional[int] = None
    last_error: Optional[Dict[str, Any]] = None
    file_writes: int = 0

    @property
    def success_rate(self) -> int:
        """Successful runs as a whole percentage of all runs."""
        if self.total_runs == 0:
            return 0
        return round(self.successful_runs / self.total_runs * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRuns": self.total_runs,
            "successfulRuns": self.successful_runs,
            "lastRun": self.last_run,
            "lastSuccess": self.last_success,
            "lastError": self.last_error,
            "fileWrites": self.file_writes,
            "successRate": self.success_rate,
        }


class FlightDataCollector:
    """
    Appends raw aircraft snapshots to window files on an interval.

    Runs from the interval loop and manual triggers share one lock, so two
    runs never rewrite the same file at once.

    Attributes:
        source: Telemetry feed.
        settings: Interval, window width and directories.
        stats: Statistics since process start.
    """

    def __init__(self, source: TelemetrySource, settings: CollectionSettings) -> None:
        self.source = source
        self.settings = settings
        self.flights_dir = Path(settings.flights_directory)
        self.emergency_dir = Path(settings.emergency_directory)
        self.stats = CollectionStats()

        self._task: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def directories(self) -> Dict[str, str]:
        return {"flights": str(self.flights_dir), "emergencies": str(self.emergency_dir)}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> Dict[str, Any]:
        """
        Start collecting; the first run happens immediately.

        Returns:
            Dict with ``success`` and ``message``. ``success`` is False when
            collection is already running or disabled in the configuration.
        """
        if self.is_running:
            return {"success": False, "message": "Collection already running"}
        if not self.settings.enabled:
            return {"success": False, "message": "Data collection is disabled in config"}

        self._task = asyncio.create_task(self._run_loop(), name="flight-collection")
        logger.info(
            "collection_started",
            interval_seconds=self.settings.interval_seconds,
            **self.directories,
        )
        return {
            "success": True,
            "message": f"Data collection started (interval: {self.settings.interval_seconds:g}s)",
            "intervalSeconds": self.settings.interval_seconds,
            "directories": self.directories,
        }

    async def stop(self) -> Dict[str, Any]:
        if not self.is_running:
            return {"success": False, "message": "Collection not running"}

        task, self._task = self._task, None
        task.cancel()  # type: ignore[union-attr]
        try:
            await task  # type: ignore[misc]
        except asyncio.CancelledError:
            pass

        logger.info("collection_stopped", **self.stats.to_dict())
        return {"success": True, "message": "Data collection stopped", "stats": self.status()}

    async def trigger(self) -> Dict[str, Any]:
        """Run one collection now, outside the interval."""
        if not self.settings.enabled:
            return {
                "success": False,
                "error": "Data collection is disabled in config",
                "failedStep": None,
            }
        logger.info("collection_triggered")
        return await self.collect_once()

    async def _run_loop(self) -> None:
        try:
            while True:
                await self.collect_once()
                await asyncio.sleep(self.settings.interval_seconds)
        except asyncio.CancelledError:
            logger.debug("collection_loop_cancelled")
            raise

    # =========================================================================
    # COLLECTION
    # =========================================================================

    async def collect_once(self) -> Dict[str, Any]:
        """
        Fetch, append to the window file and log emergency squawks.

        A fetch that returns no aircraft counts as a failed run. Never
        raises.

        Returns:
            Dict with ``success``, ``count``, ``emergencyAlerts``, ``file`` and
            ``durationMs``; or ``success=False`` with ``error`` and
            ``failedStep`` (``"fetch"`` or ``"write"``).
        """
        started = now_ms()
        self.stats.total_runs += 1
        self.stats.last_run = started

        try:
            fetch = await self.source.fetch_snapshots()
        except Exception as e:
            return self._failed(started, str(e) or type(e).__name__, FETCH_STEP)
        if not fetch.success:
            return self._failed(started, fetch.error or "Aircraft data fetch failed", FETCH_STEP)
        if fetch.count == 0:
            return self._failed(started, "No aircraft data received", FETCH_STEP)

        emergencies = detect_emergencies(fetch.snapshots, started)
        try:
            async with self._write_lock:
                path = await asyncio.to_thread(self._append_flights, fetch, started)
                if emergencies:
                    await asyncio.to_thread(self._append_emergencies, emergencies, started)
        except StorageError as e:
            return self._failed(started, e.message, WRITE_STEP)

        self.stats.file_writes += 1
        self.stats.successful_runs += 1
        self.stats.last_success = now_ms()
        self.stats.last_error = None

        for record in emergencies:
            logger.warning(
                "emergency_squawk_collected",
                icao24=record.aircraft.icao24,
                callsign=record.aircraft.callsign,
                squawk=record.emergency.squawk_code,
                code_type=record.emergency.type.value,
            )

        duration = now_ms() - started
        logger.info(
            "collection_completed",
            aircraft=fetch.count,
            emergency_alerts=len(emergencies),
            file=path.name,
            duration_ms=duration,
        )
        return {
            "success": True,
            "count": fetch.count,
            "emergencyAlerts": len(emergencies),
            "file": str(path),
            "durationMs": duration,
        }

    def _failed(self, started: int, error: str, step: str) -> Dict[str, Any]:
        self.stats.last_error = {"timestamp": now_ms(), "message": error}
        logger.error("collection_failed", error=error, failed_step=step)
        return {
            "success": False,
            "error": error,
            "failedStep": step,
            "durationMs": now_ms() - started,
        }

    # =========================================================================
    # FILES
    # =========================================================================

    def _append_flights(self, fetch: FetchResult, timestamp: int) -> Path:
        path = self.flights_dir / window_filename(timestamp, self.settings.window_minutes)
        existing = self._read_json(path, FlightWindowFile)
        collections = list(existing.collections) if existing else []
        collections.append(
            FlightCollection(
                timestamp=timestamp,
                collection_time=iso_from_ms(timestamp),
                metadata=fetch.metadata,
                aircraft=fetch.snapshots,
                count=fetch.count,
            )
        )
        self._write_json(
            path,
            FlightWindowFile(
                collections=collections,
                last_updated=iso_from_ms(now_ms()),
                total_collections=len(collections),
            ),
        )
        return path

    def _append_emergencies(self, records: List[EmergencyRecord], timestamp: int) -> Path:
        path = self.emergency_dir / emergency_log_filename(timestamp)
        existing = self._read_json(path, EmergencyLogFile)
        alerts = [*(existing.alerts if existing else []), *records]
        self._write_json(
            path,
            EmergencyLogFile(
                date=day_key(timestamp),
                last_updated=iso_from_ms(now_ms()),
                alerts=alerts,
                total_alerts=len(alerts),
            ),
        )
        return path

    def _read_json(self, path: Path, model: Type[FileModel]) -> Optional[FileModel]:
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Error reading {path}: {e}", path=path, cause=e) from e

        try:
            raw = data.decode("utf-8")
            if not raw.strip():
                return None
            return model.model_validate(json.loads(raw))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            # Start the window over; keep the unreadable copy next to it
            target = path.with_name(f"corrupted_{path.stem}_{now_ms()}.json")
            try:
                shutil.copy2(path, target)
            except OSError as copy_error:
                raise StorageError(
                    f"Error quarantining {path}: {copy_error}", path=path, cause=copy_error
                ) from copy_error
            logger.warning(
                "collection_file_corrupted", path=str(path), backup=str(target), error=str(e)
            )
            return None

    def _write_json(self, path: Path, document: BaseModel) -> None:
        payload = json.dumps(document.model_dump(mode="json", by_alias=True), indent=2)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Error writing {path}: {e}", path=path, cause=e) from e

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        next_run = None
        if self.is_running and self.stats.last_run is not None:
            next_run = self.stats.last_run + int(self.settings.interval_seconds * 1000)
        return {
            **self.stats.to_dict(),
            "isRunning": self.is_running,
            "enabled": self.settings.enabled,
            "intervalSeconds": self.settings.interval_seconds,
            "windowMinutes": self.settings.window_minutes,
            "nextRun": next_run,
            "directories": self.directories,
        }
