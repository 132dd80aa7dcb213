"""
Monitoring control endpoints.

Provides:
    POST  /api/alerts/monitor/start   Start scheduled monitoring
    POST  /api/alerts/monitor/stop    Stop scheduled monitoring
    GET   /api/alerts/monitor/status  Scheduler state and statistics
    PATCH /api/alerts/monitor/config  Change interval or retry policy
    POST  /api/alerts/monitor/manual  One fetch-and-analyze pass
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from airwatch.api.envelope import get_service, respond
from airwatch.services import AlertMonitoringService

router = APIRouter()


@router.post("/start", summary="Start monitoring")
async def start_monitoring(
    config: Optional[Dict[str, Any]] = Body(
        None,
        examples=[{"intervalSeconds": 15, "maxRetries": 3, "retryDelaySeconds": 5}],
    ),
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.start_monitoring(config))


@router.post("/stop", summary="Stop monitoring")
async def stop_monitoring(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.stop_monitoring())


@router.get("/status", summary="Monitoring status")
async def get_monitoring_status(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_monitoring_status())


@router.patch("/config", summary="Update monitoring settings")
async def update_monitoring_config(
    config: Dict[str, Any] = Body(..., examples=[{"intervalSeconds": 60}]),
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.update_monitoring_config(config))


@router.post("/manual", summary="Run a manual analysis")
async def run_manual_analysis(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.run_manual_analysis())
