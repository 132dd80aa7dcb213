"""
Service entry points for the airspace monitor.

Services:
    alert-monitor: Alerts API, scheduled monitoring and alert storage
"""
