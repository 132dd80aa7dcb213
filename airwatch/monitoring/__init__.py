"""
Scheduled monitoring.

Modules:
    scheduler: MonitoringScheduler for interval-driven analysis cycles
"""

from airwatch.monitoring.scheduler import MonitoringScheduler

__all__ = [
    "MonitoringScheduler",
]
