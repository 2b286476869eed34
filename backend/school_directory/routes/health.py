"""
School Directory Backend — Health Check Route
===============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Probes the database with SELECT 1 and asks the configured Blob Store
       whether it is reachable.

Status levels:
    - healthy:   database and storage operational
    - degraded:  database up, storage unreachable (reads still work)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from school_directory import __version__
from school_directory.database import engine
from school_directory.schemas.school import HealthResponse
from school_directory.services.school_service import school_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    store = school_service.files.blob_store
    try:
        storage_ok = await store.health_check()
    except Exception as e:
        storage_ok = False
        logger.warning("Health check: storage probe failed: %s", str(e))

    if not storage_ok and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=f"{store.name}:{'available' if storage_ok else 'unavailable'}",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
