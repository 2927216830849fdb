"""
Quotebook Backend — Health Check Route
======================================

What:  Liveness plus a reachability probe of the remote backend.
Who:   Container health checks and the UI's offline banner.

Status levels:
    healthy    the auth server answered its health endpoint
    degraded   the backend is unreachable; local routes still work
"""

import logging
import time

from fastapi import APIRouter, Depends

from quotebook import __version__
from quotebook.dependencies import get_services
from quotebook.schemas.api import HealthResponse
from quotebook.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(services: ServiceContainer = Depends(get_services)) -> HealthResponse:
    reachable = await services.gateway.health_check()
    if not reachable:
        logger.warning("Health check: backend unreachable")

    return HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        backend="reachable" if reachable else "unreachable",
        authenticated=services.auth.is_authenticated,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
