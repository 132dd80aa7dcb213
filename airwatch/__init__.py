"""
Airport Airspace Alert Monitor.

Watches aircraft-position telemetry around a monitored airport and raises
deduplicated, severity-ranked alerts for anomalous movement.

This package provides:
- Data models for aircraft snapshots and alerts
- A registry of heuristic movement detectors
- Alert lifecycle management (cooldown, composite alerts, retention)
- File-based alert storage with daily partitions and archival
- A monitoring scheduler with retry/backoff
- Raw flight data collection into time-window files
"""

__version__ = "1.0.0"
