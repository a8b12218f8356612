"""
EV Fleet Analytics - FastAPI Backend

Main application entry point and configuration.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleet_analytics.api.analytics import router as analytics_router
from fleet_analytics.api.schemas import ErrorResponse
from fleet_analytics.api.vehicles import router as vehicles_router
from fleet_analytics.config import get_settings
from fleet_analytics.services.repository import get_repository, init_repository
from fleet_analytics.services.telemetry_client import TelemetryFetchError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


APP_NAME = "EV Fleet Analytics"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {APP_NAME} backend")

    settings = get_settings()
    repo = get_repository()
    if repo.source_file is None and settings.vehicles_file:
        vehicles_file = Path(settings.vehicles_file)
        if vehicles_file.exists():
            init_repository(vehicles_file)
        else:
            logger.info(f"Vehicle file not found: {vehicles_file}")

    yield

    logger.info(f"Shutting down {APP_NAME} backend")


app = FastAPI(
    title=APP_NAME,
    description="""
    Backend API for EV fleet telemetry analytics.

    ## Features
    - Fetch vehicle location history from the telematics API
    - Normalize heterogeneous history columns
    - Segment trips and compute haversine distance
    - Daily statistics and drive-mode distribution
    - Stored vehicle details merged into device listings
    """,
    version=APP_VERSION,
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TelemetryFetchError)
async def telemetry_fetch_error_handler(request: Request, exc: TelemetryFetchError):
    """Upstream failures become 502 with a retry hint."""
    logger.warning(f"Upstream telemetry failure on {request.url.path}: {exc}")
    body = ErrorResponse(detail=str(exc), code="telemetry_fetch_failed", retryable=exc.retryable)
    return JSONResponse(status_code=502, content=body.model_dump())


app.include_router(analytics_router)
app.include_router(vehicles_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    repo = get_repository()
    settings = get_settings()

    return {
        "status": "healthy",
        "vehicles_file": str(repo.source_file) if repo.source_file else None,
        "vehicle_count": len(repo),
        "telemetry_base_url": settings.telemetry_base_url,
    }
