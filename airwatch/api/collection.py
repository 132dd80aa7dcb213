"""
Flight data collection endpoints.

Provides:
    GET   /api/collection          Collector status and statistics
    POST  /api/collection/start    Start interval collection
    POST  /api/collection/stop     Stop interval collection
    POST  /api/collection/trigger  One collection run now
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from airwatch.api.envelope import get_service, respond
from airwatch.services import AlertMonitoringService

router = APIRouter()


@router.get("", summary="Collection status")
async def get_collection_status(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.get_collection_status())


@router.post("/start", summary="Start data collection")
async def start_collection(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.start_collection())


@router.post("/stop", summary="Stop data collection")
async def stop_collection(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.stop_collection())


@router.post("/trigger", summary="Collect once now")
async def trigger_collection(
    service: AlertMonitoringService = Depends(get_service),
) -> JSONResponse:
    return respond(await service.trigger_collection())
