"""
JSON file storage for alerts.

This module provides the AlertStorage class which persists the in-memory
alert set to a directory of JSON files.

Layout (all names configurable):
    <alerts_directory>/current_alerts.json       Full alert set as last saved
    <alerts_directory>/historical_alerts.json    Every archived alert
    <alerts_directory>/alerts_YYYY-MM-DD.json    Alerts created on one UTC day
    <backup_directory>/                          Oversize and corrupted copies

Key Features:
    - Blocking file IO runs in worker threads via ``asyncio.to_thread``
    - Files are written to a temporary sibling and renamed into place
    - Unparseable or wrongly shaped files are quarantined, never raised
    - An oversize current file is backed up, archived and pruned to its
      most recent quarter

Example:
    >>> storage = AlertStorage(config.alerts.storage, store)
    >>> await storage.initialize()
    >>> await storage.load_current()
    >>> await storage.persist()
"""

import asyncio
import json
import os
import shutil
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from airwatch.clock import DAY_FORMAT, day_key, now_ms, parse_day
from airwatch.config.models import StorageSettings
from airwatch.detection.state import AlertStore, build_cooldown_key
from airwatch.models.alerts import Alert
from airwatch.models.storage import (
    CurrentAlertsFile,
    CurrentFileMetadata,
    DailyAlertsFile,
    DailyFileMetadata,
    HistoricalAlertsFile,
    HistoricalFileMetadata,
)

logger = structlog.get_logger(__name__)

FileModel = TypeVar("FileModel", bound=BaseModel)

MAX_RANGE_DAYS = 366


class StorageError(Exception):
    """
    Raised when a storage file cannot be read or written.

    Attributes:
        message: Error message describing what went wrong.
        path: File or directory involved.
        cause: Original exception, if any.
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.path = path
        self.cause = cause
        super().__init__(message)


class StorageInitError(StorageError):
    """Raised when the storage directories cannot be prepared at startup."""


class InvalidQueryError(ValueError):
    """Raised for malformed date or date-range query parameters."""


def _validate_day(value: Optional[str], name: str = "date") -> str:
    if not value:
        raise InvalidQueryError(f"{name} is required (YYYY-MM-DD)")
    try:
        parse_day(value)
    except ValueError as e:
        raise InvalidQueryError(f"{name} must be a valid YYYY-MM-DD date, got {value!r}") from e
    return value


def _merge_by_id(*groups: List[Alert]) -> List[Alert]:
    merged: Dict[str, Alert] = {}
    for group in groups:
        for alert in group:
            merged[alert.id] = alert
    return list(merged.values())


class AlertStorage:
    """
    Durable JSON persistence for the shared alert set.

    All writes are expected to come from a single writer (see AlertWriter);
    the storage class itself does no locking.

    Attributes:
        settings: Directory, file name and size-cap settings.
        store: Shared in-memory alert state.
        alerts_dir: Directory holding current, historical and daily files.
        backup_dir: Directory holding oversize and corrupted copies.
        degraded: True when directory setup failed but the fallback
            current file could be written.
    """

    def __init__(self, settings: StorageSettings, store: AlertStore) -> None:
        self.settings = settings
        self.store = store
        self.alerts_dir = Path(settings.alerts_directory)
        self.backup_dir = Path(settings.backup_directory)
        self.degraded = False

    # =========================================================================
    # PATHS
    # =========================================================================

    @property
    def current_path(self) -> Path:
        return self.alerts_dir / self.settings.current_alerts_file

    @property
    def historical_path(self) -> Path:
        return self.alerts_dir / self.settings.historical_alerts_file

    def daily_path(self, day: str) -> Path:
        return self.alerts_dir / f"{self.settings.daily_file_prefix}{day}.json"

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """
        Create the storage directories.

        If creation fails, one attempt is made to write a fresh empty current
        file; when that also fails startup is aborted.

        Raises:
            StorageInitError: If neither the directories nor the fallback
                current file could be created.
        """
        try:
            await asyncio.to_thread(self._ensure_directories)
            logger.info(
                "storage_initialized",
                alerts_directory=str(self.alerts_dir),
                backup_directory=str(self.backup_dir),
            )
            return
        except OSError as e:
            logger.error("storage_directories_failed", error=str(e))
            init_error = e

        try:
            await asyncio.to_thread(
                self._write_json,
                self.current_path,
                CurrentAlertsFile(metadata=CurrentFileMetadata(last_saved=now_ms())),
            )
        except StorageError as e:
            logger.critical("storage_fallback_failed", error=str(e))
            raise StorageInitError(
                f"Cannot initialize alert storage in {self.alerts_dir}",
                path=self.alerts_dir,
                cause=init_error,
            ) from e

        self.degraded = True
        logger.warning("storage_degraded", current_file=str(self.current_path))

    def _ensure_directories(self) -> None:
        for directory in (self.alerts_dir, self.backup_dir):
            if not directory.is_dir():
                directory.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # LOW-LEVEL IO
    # =========================================================================

    async def load(self, path: Path, model: Type[FileModel]) -> Optional[FileModel]:
        """
        Read and validate one storage file.

        Args:
            path: File to read.
            model: Expected file shape.

        Returns:
            The parsed file, or None if it is missing, empty or corrupted.
            Corrupted files are copied into the backup directory first.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        return await asyncio.to_thread(self._load_sync, path, model)

    def _load_sync(self, path: Path, model: Type[FileModel]) -> Optional[FileModel]:
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
            logger.warning("storage_file_corrupted", path=str(path), error=str(e))
            self._quarantine(path)
            return None

    def _quarantine(self, path: Path) -> Optional[Path]:
        target = self.backup_dir / f"corrupted_{path.stem}_{now_ms()}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
        except OSError as e:
            logger.error("storage_quarantine_failed", path=str(path), error=str(e))
            return None
        logger.info("storage_file_quarantined", path=str(path), backup=str(target))
        return target

    def _write_json(self, path: Path, document: BaseModel) -> int:
        payload = json.dumps(document.model_dump(mode="json", by_alias=True), indent=2)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
            return path.stat().st_size
        except OSError as e:
            raise StorageError(f"Error writing {path}: {e}", path=path, cause=e) from e

    def _backup_sync(self, path: Path, label: str) -> Path:
        target = self.backup_dir / f"{label}_{now_ms()}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
        except OSError as e:
            raise StorageError(f"Error backing up {path}: {e}", path=path, cause=e) from e
        return target

    # =========================================================================
    # CURRENT FILE
    # =========================================================================

    async def load_current(self) -> int:
        """
        Replace the in-memory alert set with the current file's contents.

        Cooldowns are rebuilt from the loaded alerts so a restart does not
        re-fire alerts that are still cooling down.

        Returns:
            int: Number of alerts loaded (0 if the file was absent).
        """
        document = await self.load(self.current_path, CurrentAlertsFile)
        alerts = list(document.alerts) if document else []
        self.store.replace_alerts(alerts)

        self.store.cooldowns.clear()
        for alert in alerts:
            key = build_cooldown_key(alert.type, alert.aircraft_id)
            self.store.cooldowns[key] = max(alert.timestamp, self.store.cooldowns.get(key, 0))

        logger.info("alerts_loaded", count=len(alerts), path=str(self.current_path))
        return len(alerts)

    async def save_current(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """
        Write the full alert set to the current file.

        When the written file exceeds ``max_current_file_size_bytes`` it is
        copied to the backup directory, the alert set is archived, and the
        in-memory set is pruned to its most recent quarter before the file is
        rewritten once.

        Returns:
            Dict with ``count``, ``sizeBytes`` and ``archived``.

        Raises:
            StorageError: If a write fails.
        """
        if timestamp is None:
            timestamp = now_ms()

        size = await self._write_current(timestamp)
        archived = False

        if size > self.settings.max_current_file_size_bytes:
            backup = await asyncio.to_thread(
                self._backup_sync, self.current_path, "current_alerts_oversize"
            )
            await self.archive(timestamp)

            before = len(self.store.alerts)
            newest = sorted(self.store.alerts, key=lambda a: a.timestamp)
            kept_ids = {a.id for a in newest[before - before // 4:]}
            self.store.replace_alerts([a for a in self.store.alerts if a.id in kept_ids])

            size = await self._write_current(timestamp)
            archived = True
            logger.warning(
                "current_file_oversize",
                backup=str(backup),
                alerts_before=before,
                alerts_after=len(self.store.alerts),
                size_bytes=size,
            )

        logger.debug("current_alerts_saved", count=len(self.store.alerts), size_bytes=size)
        return {"count": len(self.store.alerts), "sizeBytes": size, "archived": archived}

    async def _write_current(self, timestamp: int) -> int:
        document = CurrentAlertsFile(
            alerts=list(self.store.alerts),
            metadata=CurrentFileMetadata(last_saved=timestamp, count=len(self.store.alerts)),
        )
        return await asyncio.to_thread(self._write_json, self.current_path, document)

    # =========================================================================
    # DAILY AND HISTORICAL FILES
    # =========================================================================

    async def save_daily(self, timestamp: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Overwrite today's file with the in-memory alerts created today.

        Returns:
            Dict with ``date`` and ``count``, or None when daily files are
            disabled.
        """
        if not self.settings.create_daily_files:
            return None
        if timestamp is None:
            timestamp = now_ms()

        day = day_key(timestamp)
        alerts = [a for a in self.store.alerts if day_key(a.timestamp) == day]
        document = DailyAlertsFile(
            date=day,
            alerts=alerts,
            metadata=DailyFileMetadata(created=timestamp, count=len(alerts)),
        )
        await asyncio.to_thread(self._write_json, self.daily_path(day), document)

        logger.debug("daily_alerts_saved", date=day, count=len(alerts))
        return {"date": day, "count": len(alerts)}

    async def persist(self, timestamp: Optional[int] = None) -> Dict[str, Any]:
        """Save the current file, then today's daily file."""
        if timestamp is None:
            timestamp = now_ms()
        current = await self.save_current(timestamp)
        daily = await self.save_daily(timestamp)
        return {"current": current, "daily": daily}

    async def archive(self, timestamp: Optional[int] = None) -> int:
        """
        Merge the in-memory alert set into the historical file.

        Alerts already archived are kept; an alert id present in both is
        written once.

        Returns:
            int: Number of alerts in the historical file after the merge.

        Raises:
            StorageError: If the historical file cannot be read or written.
        """
        if timestamp is None:
            timestamp = now_ms()

        existing = await self.load(self.historical_path, HistoricalAlertsFile)
        merged = _merge_by_id(list(existing.alerts) if existing else [], list(self.store.alerts))

        document = HistoricalAlertsFile(
            alerts=merged,
            metadata=HistoricalFileMetadata(last_archived=timestamp, count=len(merged)),
        )
        await asyncio.to_thread(self._write_json, self.historical_path, document)

        logger.info("alerts_archived", in_memory=len(self.store.alerts), total=len(merged))
        return len(merged)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_full_history(self) -> List[Alert]:
        """Historical archive plus the in-memory set, newest first."""
        archived = await self.load(self.historical_path, HistoricalAlertsFile)
        merged = _merge_by_id(list(archived.alerts) if archived else [], list(self.store.alerts))
        merged.sort(key=lambda a: a.timestamp, reverse=True)
        return merged

    async def get_daily_alerts(self, day: str) -> Optional[DailyAlertsFile]:
        """
        Read one day's file.

        Raises:
            InvalidQueryError: If ``day`` is not a YYYY-MM-DD date.
        """
        _validate_day(day)
        return await self.load(self.daily_path(day), DailyAlertsFile)

    async def get_alerts_by_date_range(self, start: str, end: str) -> List[Alert]:
        """
        Collect the alerts of every daily file in an inclusive date range.

        Args:
            start: First day (YYYY-MM-DD).
            end: Last day (YYYY-MM-DD), not before ``start``.

        Returns:
            List[Alert]: Alerts of all days in range, newest first.

        Raises:
            InvalidQueryError: If a bound is missing or malformed, the range
                is reversed, or it spans more than 366 days.
        """
        first = parse_day(_validate_day(start, "startDate"))
        last = parse_day(_validate_day(end, "endDate"))
        if first > last:
            raise InvalidQueryError("startDate must not be after endDate")
        span = (last - first).days + 1
        if span > MAX_RANGE_DAYS:
            raise InvalidQueryError(f"Date range may span at most {MAX_RANGE_DAYS} days")

        alerts: List[Alert] = []
        for offset in range(span):
            day = (first + timedelta(days=offset)).strftime(DAY_FORMAT)
            document = await self.load(self.daily_path(day), DailyAlertsFile)
            if document is not None:
                alerts.extend(document.alerts)

        alerts.sort(key=lambda a: a.timestamp, reverse=True)
        return alerts

    async def list_daily_files(self) -> List[Dict[str, Any]]:
        """Daily files on disk as ``{date, filename, sizeBytes}``, newest first."""
        return await asyncio.to_thread(self._list_daily_sync)

    def _list_daily_sync(self) -> List[Dict[str, Any]]:
        prefix = self.settings.daily_file_prefix
        files: List[Dict[str, Any]] = []
        if not self.alerts_dir.is_dir():
            return files

        for path in self.alerts_dir.glob(f"{prefix}*.json"):
            day = path.stem[len(prefix):]
            try:
                parse_day(day)
            except ValueError:
                continue
            files.append({"date": day, "filename": path.name, "sizeBytes": path.stat().st_size})

        files.sort(key=lambda f: f["date"], reverse=True)
        return files

    async def info(self) -> Dict[str, Any]:
        """Directory paths and sizes of the current and historical files."""
        return await asyncio.to_thread(self._info_sync)

    def _info_sync(self) -> Dict[str, Any]:
        def size_of(path: Path) -> Optional[int]:
            return path.stat().st_size if path.is_file() else None

        return {
            "alertsDirectory": str(self.alerts_dir),
            "backupDirectory": str(self.backup_dir),
            "currentFileSizeBytes": size_of(self.current_path),
            "historicalFileSizeBytes": size_of(self.historical_path),
            "maxCurrentFileSizeBytes": self.settings.max_current_file_size_bytes,
            "degraded": self.degraded,
        }

    def is_writable(self) -> bool:
        """Check that the alerts directory exists and accepts writes."""
        return self.alerts_dir.is_dir() and os.access(self.alerts_dir, os.W_OK)
