"""
Bug Tracker Backend: Health Check Route
=========================================

What:  Health check endpoint for monitoring and container probes.
How:   Runs SELECT 1 against the database and asks the TagGenerator whether
       its provider is reachable (or its circuit breaker is open).
Who:   Docker health checks, load balancers and monitoring. No auth.

Status levels:
    healthy    database and tag model available                  (HTTP 200)
    degraded   tag model down; bugs still work with default tags  (HTTP 200)
    unhealthy  database unreachable                               (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from bugtracker import __version__
from bugtracker.database import engine
from bugtracker.dependencies import get_tag_generator
from bugtracker.schemas.bug import HealthResponse
from bugtracker.services.tag_generator import TagGenerator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    tag_generator: TagGenerator = Depends(get_tag_generator),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Tag Model ───────────────────────────────────────────────────
    try:
        tag_model_status = await tag_generator.health_check()
    except Exception as e:
        tag_model_status = "unavailable"
        logger.warning("Health check: tag model unreachable: %s", str(e))
    if tag_model_status != "available" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        tag_model=tag_model_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
