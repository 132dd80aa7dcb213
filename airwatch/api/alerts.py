"""
Alert query and maintenance endpoints.

Provides:
    GET    /api/alerts                      Filtered alerts (in memory or with history)
    GET    /api/alerts/active               Active alerts
    GET    /api/alerts/all                  Every in-memory alert
    GET    /api/alerts/stats                Counts and storage details
    GET    /api/alerts/analyze              One fetch-and-analyze pass
    GET    /api/alerts/test                 Alert system self-check
    GET    /api/alerts/type/{type}          Alerts of one type
    GET    /api/alerts/severity/{severity}  Alerts of one severity
    GET    /api/alerts/history/full         Archive merged with memory
    GET    /api/alerts/history/range        Daily files in a date range
    GET    /api/alerts/history/daily        Available daily files
    GET    /api/alerts/history/daily/{date} One day's alerts
    POST   /api/alerts/save                 Save now
    POST   /api/alerts/reload               Reload from the current file
    DELETE /api/alerts/clear                Archive, then clear
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from airwatch.api.envelope import get_service, respond
from airwatch.services import DEFAULT_QUERY_LIMIT, AlertMonitoringService

router = APIRouter()


@router.get("", summary="Get filtered alerts")
async def get_filtered_alerts(
    type: Optional[str] = Query(None, description="Alert type, e.g. SHARP_TURN"),
    severity: Optional[str] = Query(None, description="LOW, MEDIUM, HIGH or CRITICAL"),
    active: Optional[bool] = Query(None, description="Filter on the active flag"),
    since: Optional[str] = Query(None, description="Epoch ms or ISO-8601 lower bound"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=0, description="Maximum alerts returned"),
    include_historical: bool = Query(
        False, alias="includeHistorical", description="Include archived alerts"
    ),
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(
        await service.get_filtered_alerts(
            alert_type=type,
            severity=severity,
            active=active,
            since=since,
            limit=limit,
            include_historical=include_historical,
        )
    )


@router.get("/active", summary="Get active alerts")
async def get_active_alerts(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.get_active_alerts())


@router.get("/all", summary="Get all in-memory alerts")
async def get_all_alerts(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.get_all_alerts())


@router.get("/stats", summary="Alert statistics")
async def get_alerts_stats(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.get_alerts_stats())


@router.get("/analyze", summary="Analyze current aircraft data")
async def analyze_current_alerts(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.run_manual_analysis())


@router.get("/test", summary="Alert system self-check")
async def test_alert_system(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.test_alert_system())


@router.get("/type/{alert_type}", summary="Alerts of one type")
async def get_alerts_by_type(
    alert_type: str,
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_alerts_by_type(alert_type))


@router.get("/severity/{severity}", summary="Alerts of one severity")
async def get_alerts_by_severity(
    severity: str,
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_alerts_by_severity(severity))


# =============================================================================
# HISTORY
# =============================================================================


@router.get("/history/full", summary="Full alert history")
async def get_full_history(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.get_full_history())


@router.get("/history/range", summary="Alerts in a date range")
async def get_alerts_by_date_range(
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD"),
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_alerts_by_date_range(start_date, end_date))


@router.get("/history/daily", summary="Available daily files")
async def get_available_daily_files(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_available_daily_files())


@router.get("/history/daily/{date}", summary="Alerts of one day")
async def get_daily_alerts(
    date: str,
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_daily_alerts(date))


# =============================================================================
# MAINTENANCE
# =============================================================================


@router.post("/save", summary="Save alerts now")
async def save_alerts(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.save_alerts())


@router.post("/reload", summary="Reload alerts from the current file")
async def reload_alerts(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.reload_alerts())


@router.delete("/clear", summary="Archive and clear all alerts")
async def clear_all_alerts(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.clear_all_alerts())
