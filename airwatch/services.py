"""
Service wiring and the alert monitoring facade.

This module provides ``setup_logging`` and the AlertMonitoringService class,
which assembles the store, detectors, manager, storage, writer, telemetry
source and scheduler, and exposes every operation of the monitor as an async
method returning a result dict.

Result shape:
    Success: ``{"success": True, ...operation fields}``
    Failure: ``{"success": False, "error": str, "errorType": str}`` where
    ``errorType`` is ``validation``, ``conflict``, ``upstream`` or
    ``internal``.

No operation raises; ``initialize()`` is the only method that can abort,
when the storage directories cannot be prepared.

Example:
    >>> setup_logging(config.logging.level.value, config.logging.format)
    >>> service = AlertMonitoringService(config)
    >>> await service.initialize()
    >>> await service.start_monitoring({"intervalSeconds": 15})
    >>> (await service.get_alerts_stats())["stats"]["total"]
    0
    >>> await service.shutdown()
"""

import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from airwatch import __version__
from airwatch.clock import now_ms
from airwatch.config.models import AppConfig, LogFormat
from airwatch.detection.detectors import DetectorRegistry
from airwatch.detection.manager import AlertManager
from airwatch.detection.state import AlertStore
from airwatch.detection.storage import (
    AlertStorage,
    InvalidQueryError,
    StorageError,
)
from airwatch.detection.writer import AlertWriter
from airwatch.ingestion.collector import FETCH_STEP, FlightDataCollector
from airwatch.ingestion.opensky import OpenSkyClient
from airwatch.interfaces.telemetry_source import TelemetrySource
from airwatch.models.alerts import AlertSeverity, AlertType
from airwatch.models.monitoring import FetchResult
from airwatch.monitoring.scheduler import MonitoringScheduler

logger = structlog.get_logger(__name__)

Result = Dict[str, Any]

DEFAULT_QUERY_LIMIT = 100


def setup_logging(
    level: str = "INFO",
    fmt: Union[LogFormat, str] = LogFormat.JSON,
) -> None:
    """Configure structlog and the standard library logger."""
    renderer: Any
    if LogFormat(fmt) == LogFormat.TEXT:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )

    # Reduce noise from uvicorn access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# RESULT HELPERS
# =============================================================================


def failure(error: str, error_type: str = "internal") -> Result:
    return {"success": False, "error": error, "errorType": error_type}


def _records(alerts: Any) -> list:
    return [alert.to_record() for alert in alerts]


def _guarded(operation: Callable[..., Awaitable[Result]]) -> Callable[..., Awaitable[Result]]:
    """Turn exceptions raised by a facade operation into failure results."""

    @functools.wraps(operation)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return await operation(*args, **kwargs)
        except (InvalidQueryError, ValidationError) as e:
            logger.info("operation_rejected", operation=operation.__name__, error=str(e))
            return failure(str(e), "validation")
        except StorageError as e:
            logger.error(
                "operation_storage_failed",
                operation=operation.__name__,
                path=str(e.path) if e.path else None,
                error=str(e),
            )
            return failure(str(e), "internal")
        except Exception as e:
            logger.exception("operation_failed", operation=operation.__name__)
            return failure(str(e) or type(e).__name__, "internal")

    return wrapper


def _parse_enum(enum_cls: Any, value: str, name: str) -> Any:
    try:
        return enum_cls(value.upper())
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidQueryError(f"Unknown {name} {value!r}; expected one of {allowed}") from e


def _parse_since(value: Union[int, str, None]) -> Optional[int]:
    """Accept epoch milliseconds or an ISO-8601 timestamp."""
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    if value.isdigit():
        return int(value)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidQueryError(
            f"since must be epoch milliseconds or ISO-8601, got {value!r}"
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _monitoring_overrides(partial: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Accept camelCase or snake_case keys for monitoring settings."""
    return {to_snake(key): value for key, value in (partial or {}).items()}


class AlertMonitoringService:
    """
    Facade over the alert engine, storage, scheduler and flight collector.

    Attributes:
        config: Application configuration.
        store: Shared in-memory alert state.
        registry: Detector registry.
        storage: JSON file storage.
        writer: Single writer for all storage writes.
        manager: AlertManager.
        source: Telemetry feed.
        scheduler: Monitoring scheduler.
        collector: Raw flight data collector.
    """

    def __init__(self, config: AppConfig, source: Optional[TelemetrySource] = None) -> None:
        self.config = config
        self.store = AlertStore.create(config.alerts.history_size)
        self.registry = DetectorRegistry.from_config(config.alerts.detection, config.airport)
        self.storage = AlertStorage(config.alerts.storage, self.store)
        self.writer = AlertWriter(self.storage)
        self.manager = AlertManager(self.store, self.registry, config.alerts, self.writer)
        self.source = source or OpenSkyClient(config.opensky, config.airport)
        self.scheduler = MonitoringScheduler(self.source, self.manager, config.monitoring)
        self.collector = FlightDataCollector(self.source, config.collection)

        self._auto_save_task: Optional[asyncio.Task] = None
        self.initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> Result:
        """
        Prepare storage, load the saved alerts and start background saving.

        Raises:
            StorageInitError: If the storage directories and the fallback
                current file both fail.
        """
        await self.storage.initialize()

        try:
            loaded = await self.storage.load_current()
        except StorageError as e:
            logger.error("initial_load_failed", error=str(e))
            loaded = 0

        await self.writer.start()

        settings = self.config.alerts.storage
        if settings.auto_save and self._auto_save_task is None:
            self._auto_save_task = asyncio.create_task(
                self._auto_save_loop(settings.save_interval_seconds), name="alert-auto-save"
            )

        self.initialized = True
        logger.info(
            "alert_service_initialized",
            alerts_loaded=loaded,
            airport=self.config.airport.icao,
            auto_save=settings.auto_save,
        )
        return {"success": True, "alertsLoaded": loaded}

    async def shutdown(self) -> Result:
        """Stop monitoring, collection and background saving, archive, save and stop the writer."""
        if self.scheduler.is_running:
            await self.scheduler.stop()
        if self.collector.is_running:
            await self.collector.stop()

        if self._auto_save_task is not None:
            self._auto_save_task.cancel()
            try:
                await self._auto_save_task
            except asyncio.CancelledError:
                pass
            self._auto_save_task = None

        errors = []
        for reason, operation in (
            ("shutdown_archive", self.storage.archive),
            ("shutdown_save", self.storage.persist),
        ):
            try:
                await self.writer.submit(reason, operation)
            except StorageError as e:
                logger.error("shutdown_write_failed", reason=reason, error=str(e))
                errors.append(str(e))

        await self.writer.stop()
        await self.source.close()
        self.initialized = False

        logger.info("alert_service_shutdown", alerts=len(self.store.alerts))
        if errors:
            return failure("; ".join(errors), "internal")
        return {"success": True, "message": "Alert service shut down gracefully"}

    async def _auto_save_loop(self, interval: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                self.writer.request("auto_save")
        except asyncio.CancelledError:
            logger.debug("auto_save_loop_cancelled")
            raise

    # =========================================================================
    # MONITORING
    # =========================================================================

    @_guarded
    async def start_monitoring(self, config: Optional[Dict[str, Any]] = None) -> Result:
        result = await self.scheduler.start(_monitoring_overrides(config))
        if not result["success"]:
            return {**failure(result["message"], "conflict"), "status": result["status"]}
        return result

    @_guarded
    async def stop_monitoring(self) -> Result:
        result = await self.scheduler.stop()
        if not result["success"]:
            return {**failure(result["message"], "conflict"), "status": result["status"]}
        return result

    @_guarded
    async def get_monitoring_status(self) -> Result:
        return {"success": True, "status": self.scheduler.status()}

    @_guarded
    async def update_monitoring_config(self, partial: Dict[str, Any]) -> Result:
        settings = self.scheduler.update_config(_monitoring_overrides(partial))
        return {
            "success": True,
            "message": "Configuration updated",
            "config": self.scheduler.status()["settings"],
            "applied": settings.model_dump(),
        }

    @_guarded
    async def run_manual_analysis(self) -> Result:
        result = await self.scheduler.run_manual_analysis()
        if not result["success"]:
            return failure(f"Aircraft data fetch failed: {result['error']}", "upstream")
        return result

    # =========================================================================
    # IN-MEMORY QUERIES
    # =========================================================================

    @_guarded
    async def get_active_alerts(self) -> Result:
        alerts = self.manager.get_active()
        return {"success": True, "alerts": _records(alerts), "count": len(alerts)}

    @_guarded
    async def get_all_alerts(self) -> Result:
        alerts = self.manager.get_all()
        return {"success": True, "alerts": _records(alerts), "count": len(alerts)}

    @_guarded
    async def get_alerts_by_type(self, alert_type: str) -> Result:
        parsed = _parse_enum(AlertType, alert_type, "alert type")
        alerts = self.manager.get_by_type(parsed)
        return {
            "success": True,
            "type": parsed.value,
            "alerts": _records(alerts),
            "count": len(alerts),
        }

    @_guarded
    async def get_alerts_by_severity(self, severity: str) -> Result:
        parsed = _parse_enum(AlertSeverity, severity, "severity")
        alerts = self.manager.get_by_severity(parsed)
        return {
            "success": True,
            "severity": parsed.value,
            "alerts": _records(alerts),
            "count": len(alerts),
        }

    @_guarded
    async def get_filtered_alerts(
        self,
        alert_type: Optional[str] = None,
        severity: Optional[str] = None,
        active: Optional[bool] = None,
        since: Union[int, str, None] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        include_historical: bool = False,
    ) -> Result:
        """Alerts matching every given filter, newest first."""
        if limit < 0:
            raise InvalidQueryError("limit must not be negative")

        source: Any
        if include_historical:
            source = await self.storage.get_full_history()
        else:
            source = self.manager.get_all()

        alerts = self.manager.filter(
            source,
            alert_type=_parse_enum(AlertType, alert_type, "alert type") if alert_type else None,
            severity=_parse_enum(AlertSeverity, severity, "severity") if severity else None,
            active=active,
            since=_parse_since(since),
            limit=limit,
        )
        return {
            "success": True,
            "alerts": _records(alerts),
            "count": len(alerts),
            "filters": {
                "type": alert_type,
                "severity": severity,
                "active": active,
                "since": since,
                "limit": limit,
                "includeHistorical": include_historical,
            },
        }

    @_guarded
    async def get_alerts_stats(self) -> Result:
        stats = self.manager.stats()
        stats["storage"] = {**(await self.storage.info()), "writer": self.writer.status()}
        return {"success": True, "stats": stats}

    @_guarded
    async def test_alert_system(self) -> Result:
        """Report detectors, in-memory counts, storage health and scheduler state."""
        writable = await asyncio.to_thread(self.storage.is_writable)
        test = {
            "timestamp": now_ms(),
            "detectors": self.registry.describe(),
            "alertsInMemory": len(self.store.alerts),
            "trackedAircraft": len(self.store.history),
            "cooldownEntries": len(self.store.cooldowns),
            "storage": {
                "writable": writable,
                "degraded": self.storage.degraded,
                "writerRunning": self.writer.is_running,
            },
            "monitoring": {
                "state": self.scheduler.state.value,
                "source": self.source.source_name,
            },
            "compositeEnabled": self.config.alerts.composite.enabled,
        }
        test["healthy"] = writable and self.writer.is_running
        return {"success": True, "test": test}

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    @_guarded
    async def save_alerts(self) -> Result:
        result = await self.writer.flush("manual_save")
        return {"success": True, "result": result}

    @_guarded
    async def reload_alerts(self) -> Result:
        count = await self.storage.load_current()
        return {"success": True, "count": count}

    @_guarded
    async def clear_all_alerts(self) -> Result:
        """Archive the alert set, then clear alerts and cooldowns and save."""
        cleared = len(self.store.alerts)
        archived_total = await self.writer.submit("clear_archive", self.storage.archive)
        self.manager.reset()
        await self.writer.flush("clear")

        logger.info("alerts_cleared", cleared=cleared, archived_total=archived_total)
        return {
            "success": True,
            "clearedCount": cleared,
            "archivedTotal": archived_total,
        }

    # =========================================================================
    # HISTORY
    # =========================================================================

    @_guarded
    async def get_full_history(self) -> Result:
        alerts = await self.storage.get_full_history()
        return {"success": True, "alerts": _records(alerts), "count": len(alerts)}

    @_guarded
    async def get_alerts_by_date_range(self, start_date: str, end_date: str) -> Result:
        alerts = await self.storage.get_alerts_by_date_range(start_date, end_date)
        return {
            "success": True,
            "startDate": start_date,
            "endDate": end_date,
            "alerts": _records(alerts),
            "count": len(alerts),
        }

    @_guarded
    async def get_daily_alerts(self, date: str) -> Result:
        document = await self.storage.get_daily_alerts(date)
        if document is None:
            return {"success": True, "date": date, "found": False, "alerts": [], "count": 0}
        return {
            "success": True,
            "date": date,
            "found": True,
            "alerts": _records(document.alerts),
            "count": len(document.alerts),
            "metadata": document.metadata.model_dump(by_alias=True),
        }

    @_guarded
    async def get_available_daily_files(self) -> Result:
        files = await self.storage.list_daily_files()
        return {"success": True, "files": files, "count": len(files)}

    # =========================================================================
    # DATA COLLECTION
    # =========================================================================

    @_guarded
    async def get_collection_status(self) -> Result:
        return {"success": True, "collection": self.collector.status()}

    @_guarded
    async def start_collection(self) -> Result:
        result = await self.collector.start()
        if not result["success"]:
            return {**failure(result["message"], "conflict"), "collection": self.collector.status()}
        return result

    @_guarded
    async def stop_collection(self) -> Result:
        result = await self.collector.stop()
        if not result["success"]:
            return {**failure(result["message"], "conflict"), "collection": self.collector.status()}
        return result

    @_guarded
    async def trigger_collection(self) -> Result:
        """Run one collection now; fetch failures are upstream errors."""
        result = await self.collector.trigger()
        if result["success"]:
            return result

        step = result["failedStep"]
        if step is None:
            return failure(result["error"], "conflict")
        return failure(result["error"], "upstream" if step == FETCH_STEP else "internal")

    # =========================================================================
    # AIRCRAFT AND SYSTEM
    # =========================================================================

    @_guarded
    async def get_aircraft(self) -> Result:
        """Live aircraft around the airport, without analysis."""
        try:
            fetch = await self.source.fetch_snapshots()
        except Exception as e:
            return failure(f"Aircraft data fetch failed: {e}", "upstream")
        if not fetch.success:
            return failure(f"Aircraft data fetch failed: {fetch.error}", "upstream")

        return {
            "success": True,
            "aircraft": [
                snapshot.model_dump(mode="json", by_alias=True) for snapshot in fetch.snapshots
            ],
            "count": fetch.count,
            "metadata": fetch.metadata,
        }

    @_guarded
    async def test_connection(self) -> Result:
        """
        Check the telemetry feed with one fetch.

        Always succeeds; the outcome of the fetch is in ``connection``.
        """
        started = now_ms()
        try:
            fetch = await self.source.fetch_snapshots()
        except Exception as e:
            fetch = FetchResult(success=False, error=str(e) or type(e).__name__)

        if fetch.success:
            message = f"Connected successfully, found {fetch.count} aircraft"
            response_time = fetch.metadata.get("fetchDurationMs", now_ms() - started)
        else:
            message = f"Connection failed: {fetch.error}"
            response_time = None

        logger.info("telemetry_connection_tested", success=fetch.success, aircraft=fetch.count)
        return {
            "success": True,
            "connection": {
                "success": fetch.success,
                "message": message,
                "responseTimeMs": response_time,
                "authEnabled": self.config.opensky.auth_enabled,
                "source": self.source.source_name,
            },
        }

    @_guarded
    async def get_system_info(self) -> Result:
        airport = self.config.airport
        return {
            "success": True,
            "info": {
                "name": self.config.name,
                "description": "Airspace anomaly alerts around a monitored airport",
                "version": __version__,
                "airport": {"icao": airport.icao, "iata": airport.iata, "name": airport.name},
                "endpoints": {
                    "health": "/health",
                    "info": "/info",
                    "alerts": "/api/alerts",
                    "monitor": "/api/alerts/monitor",
                    "aircraft": "/api/aircraft",
                    "collection": "/api/collection",
                },
            },
        }
