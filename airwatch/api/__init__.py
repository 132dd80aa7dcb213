"""
HTTP control surface.

This package provides FastAPI routers for:
- Alerts: queries, history and maintenance under /api/alerts
- Monitoring: start, stop, status and config under /api/alerts/monitor
- Aircraft: live aircraft and feed check under /api/aircraft
- Collection: raw flight data collection under /api/collection
"""

from airwatch.api.app import create_app
from airwatch.api.envelope import ERROR_STATUS, respond

__all__ = [
    "create_app",
    "respond",
    "ERROR_STATUS",
]
