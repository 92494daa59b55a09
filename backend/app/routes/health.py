"""
Wellspring Backend - Health Check Route
========================================

What:  Liveness/readiness probe for load balancers and container runtimes.
How:   One SELECT 1 against the database plus the content loader's circuit
       state. No outbound request is made: a probe must not hit JSON hosts.

Status levels:
    healthy    200  database reachable, content loader circuit closed
    degraded   200  content loader circuit open (sessions still work)
    unhealthy  503  database unreachable, stop routing traffic here
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.session import HealthResponse
from app.services.content_fetch_service import CircuitBreaker, content_fetch_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def database_reachable() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    circuit_open = content_fetch_service.circuit_state == CircuitBreaker.OPEN

    if not await database_reachable():
        overall = "unhealthy"
        response.status_code = 503
    elif circuit_open:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database="connected" if overall != "unhealthy" else "disconnected",
        content_fetch="circuit_open" if circuit_open else "available",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
