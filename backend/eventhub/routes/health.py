"""
EventHub Backend — Health Check Routes
=======================================

What:  Liveness (`GET /`) and dependency health (`GET /health`) endpoints.
Who:   `/` is polled by the frontend and uptime monitors; `/health` by
       container health checks and load balancers.

Status levels for /health:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from eventhub import __version__
from eventhub.database import Database, get_database
from eventhub.schemas.record import HealthResponse, StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Process start, for uptime reporting
_start_time = time.time()


@router.get(
    "/",
    response_model=StatusResponse,
    summary="Server status",
)
async def server_status() -> StatusResponse:
    """Answers as long as the process is serving requests; no dependency checks."""
    return StatusResponse(
        message="Server is running smoothly",
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
    description="Probes the database with SELECT 1 and reports the aggregate status.",
)
async def health_check(database: Database = Depends(get_database)):
    """
    Check the health of the service and its database.

    Returns:
        HealthResponse; HTTP 503 when the database is unreachable.
    """
    connected = await database.ping()
    if not connected:
        logger.warning("Health check: database unreachable")

    health = HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not connected:
        return JSONResponse(status_code=503, content=health.model_dump())
    return health
