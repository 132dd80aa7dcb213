"""
FastAPI application for the alert monitor.

This module creates the FastAPI application with:
- CORS configuration from ApiConfig
- The alerts, monitoring, aircraft and collection routers
- Health and system info endpoints
- A lifespan that initializes and shuts down the AlertMonitoringService
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from airwatch import __version__
from airwatch.api.aircraft import router as aircraft_router
from airwatch.api.alerts import router as alerts_router
from airwatch.api.collection import router as collection_router
from airwatch.api.envelope import respond
from airwatch.api.monitor import router as monitor_router
from airwatch.services import AlertMonitoringService

logger = structlog.get_logger(__name__)


def create_app(service: AlertMonitoringService) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Service backing every endpoint. It is initialized on
            startup and shut down on exit.

    Returns:
        FastAPI: Configured FastAPI application instance.

    Example:
        >>> app = create_app(AlertMonitoringService(load_config("config")))
        >>> import uvicorn
        >>> uvicorn.run(app, host="0.0.0.0", port=3000)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("alert_monitor_starting", airport=service.config.airport.icao)
        await service.initialize()
        logger.info("alert_monitor_ready")

        yield

        logger.info("alert_monitor_shutting_down")
        result = await service.shutdown()
        if not result["success"]:
            logger.error("alert_monitor_shutdown_error", error=result["error"])
        logger.info("alert_monitor_shutdown_complete")

    app = FastAPI(
        title=service.config.name,
        description="Airspace anomaly alerts around a monitored airport",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=service.config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(monitor_router, prefix="/api/alerts/monitor", tags=["Monitoring"])
    app.include_router(alerts_router, prefix="/api/alerts", tags=["Alerts"])
    app.include_router(aircraft_router, prefix="/api/aircraft", tags=["Aircraft"])
    app.include_router(collection_router, prefix="/api/collection", tags=["Collection"])

    @app.get("/health", tags=["Health"])
    async def health():
        """Liveness check with the scheduler state."""
        return respond(
            {
                "success": True,
                "status": "ok",
                "initialized": service.initialized,
                "monitoring": service.scheduler.state.value,
            }
        )

    @app.get("/info", tags=["Health"])
    async def info():
        """Name, version, airport and endpoint map."""
        return respond(await service.get_system_info())

    logger.info("fastapi_app_created")

    return app
