"""
Live aircraft endpoints.

Provides:
    GET  /api/aircraft       Aircraft currently around the airport
    GET  /api/aircraft/test  Telemetry feed connection check
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from airwatch.api.envelope import get_service, respond
from airwatch.services import AlertMonitoringService

router = APIRouter()


@router.get("", summary="Live aircraft")
async def get_aircraft(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.get_aircraft())


@router.get("/test", summary="Test the telemetry feed")
async def test_connection(service: AlertMonitoringService = Depends(get_service)) -> JSONResponse:
    return respond(await service.test_connection())
