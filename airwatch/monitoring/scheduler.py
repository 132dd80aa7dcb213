"""
Monitoring scheduler.

This module provides the MonitoringScheduler class which drives repeated
analysis cycles: fetch telemetry, run the detectors, record statistics.

State machine:
    STOPPED --start()--> RUNNING --cycle fails--> BACKOFF
    BACKOFF --cycle succeeds--> RUNNING
    BACKOFF --failures exceed max_retries--> RUNNING (normal interval)
    RUNNING/BACKOFF --stop()--> STOPPED

The next cycle starts a fixed delay after the previous one *ended*, so a slow
cycle postpones the following one instead of overlapping it. After a failed
cycle the short retry delay is used while the per-incident failure counter is
within ``max_retries``; the counter resets on the next success.

Example:
    >>> scheduler = MonitoringScheduler(source, manager, config.monitoring)
    >>> await scheduler.start({"interval_seconds": 15})
    >>> scheduler.status()["state"]
    'RUNNING'
    >>> await scheduler.stop()
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from airwatch.config.models import MonitoringSettings
from airwatch.detection.manager import AlertManager
from airwatch.interfaces.telemetry_source import TelemetrySource
from airwatch.models.alerts import Alert
from airwatch.models.monitoring import MonitoringStats, SchedulerState

logger = structlog.get_logger(__name__)

AlertCallback = Callable[[List[Alert]], None]


class MonitoringScheduler:
    """
    Runs analysis cycles on an interval with retry on failure.

    A manual analysis may overlap a scheduled cycle; both mutate the same
    alert set, and each mutation completes within one event-loop step.

    Attributes:
        source: Telemetry feed.
        manager: AlertManager that analyzes each batch.
        settings: Interval and retry policy (replaced, never mutated).
        stats: Statistics since the last start.
        alert_callback: Optional hook called with the new alerts of a cycle.
    """

    def __init__(
        self,
        source: TelemetrySource,
        manager: AlertManager,
        settings: MonitoringSettings,
        alert_callback: Optional[AlertCallback] = None,
    ) -> None:
        self.source = source
        self.manager = manager
        self.settings = settings
        self.alert_callback = alert_callback
        self.stats = MonitoringStats()

        self._state = SchedulerState.STOPPED
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state != SchedulerState.STOPPED

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Start monitoring.

        Merges ``overrides`` into the settings, resets the statistics and
        launches the run loop, whose first cycle runs immediately.

        Args:
            overrides: Partial MonitoringSettings (snake_case keys).

        Returns:
            Dict with ``success``, ``message`` and ``status``. ``success`` is
            False if monitoring was already running.

        Raises:
            pydantic.ValidationError: If the overrides are invalid.
        """
        if self.is_running:
            return {
                "success": False,
                "message": "Monitoring is already running",
                "status": self.status(),
            }

        if overrides:
            self.settings = self.settings.merged(overrides)

        self.stats = MonitoringStats(started_at=datetime.now(timezone.utc))
        self._state = SchedulerState.RUNNING
        self._task = asyncio.create_task(self._run_loop(), name="monitoring-loop")

        logger.info(
            "monitoring_started",
            interval_seconds=self.settings.interval_seconds,
            max_retries=self.settings.max_retries,
            source=self.source.source_name,
        )
        return {
            "success": True,
            "message": "Monitoring started successfully",
            "status": self.status(),
        }

    async def stop(self) -> Dict[str, Any]:
        """
        Stop monitoring and cancel the pending cycle.

        Returns:
            Dict with ``success``, ``message``, ``finalStats`` and ``status``.
            ``success`` is False if monitoring was not running.
        """
        if not self.is_running:
            return {
                "success": False,
                "message": "Monitoring is not running",
                "status": self.status(),
            }

        self._state = SchedulerState.STOPPED
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        final_stats = self.stats.to_dict(datetime.now(timezone.utc))
        logger.info("monitoring_stopped", **final_stats)
        return {
            "success": True,
            "message": "Monitoring stopped successfully",
            "finalStats": final_stats,
            "status": self.status(),
        }

    def update_config(self, overrides: Dict[str, Any]) -> MonitoringSettings:
        """
        Replace the settings with ``overrides`` merged in.

        Takes effect from the next scheduled delay.

        Raises:
            pydantic.ValidationError: If the merged settings are invalid.
        """
        self.settings = self.settings.merged(overrides)
        logger.info("monitoring_config_updated", **self.settings.model_dump())
        return self.settings

    # =========================================================================
    # CYCLES
    # =========================================================================

    async def _run_loop(self) -> None:
        try:
            while self.is_running:
                result = await self.run_cycle()
                delay, state = self.next_delay(result["success"])
                if not self.is_running:
                    break
                self._state = state
                if state == SchedulerState.BACKOFF:
                    logger.info(
                        "monitoring_retry_scheduled",
                        delay_seconds=delay,
                        consecutive_failures=self.stats.consecutive_failures,
                    )
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.debug("monitoring_loop_cancelled")
            raise

    def next_delay(self, success: bool) -> Tuple[float, SchedulerState]:
        """
        Choose the delay before the next cycle and the state to wait in.

        Args:
            success: Whether the cycle that just ended succeeded.

        Returns:
            Tuple of delay in seconds and the resulting state.
        """
        if success:
            return self.settings.interval_seconds, SchedulerState.RUNNING
        if self.stats.consecutive_failures <= self.settings.max_retries:
            return self.settings.retry_delay_seconds, SchedulerState.BACKOFF
        return self.settings.interval_seconds, SchedulerState.RUNNING

    async def run_cycle(self) -> Dict[str, Any]:
        """
        Run one scheduled cycle and record it in the statistics.

        Never raises; a failed fetch or analysis is counted and reported in
        the returned dict.

        Returns:
            Dict with ``success`` and either ``aircraftAnalyzed``,
            ``newAlerts`` and ``alerts``, or ``error``.
        """
        self.stats.last_run = datetime.now(timezone.utc)
        self.stats.total_runs += 1

        try:
            fetch = await self.source.fetch_snapshots()
            if not fetch.success:
                raise RuntimeError(f"Aircraft data fetch failed: {fetch.error}")
            analysis = self.manager.process_snapshots(fetch.snapshots)
        except Exception as e:
            self.stats.errors += 1
            self.stats.consecutive_failures += 1
            self.stats.last_error = str(e)
            logger.error(
                "monitoring_cycle_failed",
                error=str(e),
                consecutive_failures=self.stats.consecutive_failures,
            )
            return {"success": False, "error": str(e)}

        self.stats.consecutive_failures = 0
        self.stats.total_alerts_generated += analysis.total_new_alerts

        if analysis.new_alerts:
            for alert in analysis.new_alerts:
                logger.warning(
                    "monitoring_alert",
                    alert_type=alert.type.value,
                    severity=alert.severity.value,
                    icao24=alert.aircraft_id,
                )
            if self.alert_callback is not None:
                try:
                    self.alert_callback(analysis.new_alerts)
                except Exception as e:
                    logger.error("alert_callback_failed", error=str(e))
        else:
            logger.info("monitoring_cycle_completed", aircraft_analyzed=fetch.count)

        return {
            "success": True,
            "aircraftAnalyzed": fetch.count,
            "newAlerts": analysis.total_new_alerts,
            "alerts": [a.to_record() for a in analysis.new_alerts],
        }

    async def run_manual_analysis(self) -> Dict[str, Any]:
        """
        Fetch and analyze once, outside the schedule.

        Does not touch the run statistics. A source that raises is reported
        like a failed fetch.

        Returns:
            Dict with ``success`` and ``analysis``, or ``success=False`` and
            ``error`` when the fetch failed.
        """
        try:
            fetch = await self.source.fetch_snapshots()
        except Exception as e:
            logger.error("manual_fetch_failed", error=str(e))
            return {"success": False, "error": str(e)}
        if not fetch.success:
            return {"success": False, "error": fetch.error}

        analysis = self.manager.process_snapshots(fetch.snapshots)
        logger.info(
            "manual_analysis_completed",
            aircraft_analyzed=fetch.count,
            new_alerts=analysis.total_new_alerts,
        )
        return {"success": True, "analysis": analysis.to_dict()}

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "state": self._state.value,
            "stats": self.stats.to_dict(datetime.now(timezone.utc)),
            "settings": {
                "intervalSeconds": self.settings.interval_seconds,
                "maxRetries": self.settings.max_retries,
                "retryDelaySeconds": self.settings.retry_delay_seconds,
            },
        }
