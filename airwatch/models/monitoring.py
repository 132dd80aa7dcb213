"""
Monitoring and analysis result models.

Models:
    SchedulerState: Lifecycle state of the monitoring scheduler
    FetchResult: Outcome of one telemetry fetch
    AnalysisResult: Outcome of one detection pass
    MonitoringStats: Run statistics of the scheduler
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from airwatch.models.aircraft import AircraftSnapshot
from airwatch.models.alerts import Alert


class SchedulerState(str, Enum):
    """
    Scheduler states.

    Attributes:
        STOPPED: Idle, no cycle scheduled.
        RUNNING: Cycling on the normal interval.
        BACKOFF: Last cycle failed; next cycle uses the retry delay.
    """

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    BACKOFF = "BACKOFF"


@dataclass
class FetchResult:
    """
    Result of a telemetry fetch.

    Attributes:
        success: Whether the fetch succeeded.
        snapshots: Aircraft snapshots (empty on failure).
        error: Error message on failure.
        metadata: Source-specific details (timing, bounds...).
    """

    success: bool
    snapshots: List[AircraftSnapshot] = field(default_factory=list)
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.snapshots)


@dataclass
class AnalysisResult:
    """Alerts created by one analysis pass."""

    aircraft_analyzed: int
    new_alerts: List[Alert] = field(default_factory=list)

    @property
    def total_new_alerts(self) -> int:
        return len(self.new_alerts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aircraftAnalyzed": self.aircraft_analyzed,
            "totalNewAlerts": self.total_new_alerts,
            "newAlerts": [alert.to_record() for alert in self.new_alerts],
        }


@dataclass
class MonitoringStats:
    """
    Run statistics of the monitoring scheduler.

    Attributes:
        started_at: When monitoring was last started.
        last_run: Start time of the most recent cycle.
        total_runs: Cycles executed since start.
        total_alerts_generated: Alerts created by scheduled cycles.
        errors: Failed cycles since start (cumulative).
        consecutive_failures: Failed cycles since the last success.
        last_error: Message of the most recent failure.
    """

    started_at: Optional[datetime] = None
    last_run: Optional[datetime] = None
    total_runs: int = 0
    total_alerts_generated: int = 0
    errors: int = 0
    consecutive_failures: int = 0
    last_error: Optional[str] = None

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        uptime = 0.0
        if self.started_at is not None and now is not None:
            uptime = (now - self.started_at).total_seconds()
        return {
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "totalRuns": self.total_runs,
            "totalAlertsGenerated": self.total_alerts_generated,
            "errors": self.errors,
            "consecutiveFailures": self.consecutive_failures,
            "lastError": self.last_error,
            "uptimeSeconds": uptime,
        }
