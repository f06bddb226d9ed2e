"""
NoteCraft Backend — Health Check Route
=======================================

What:  Liveness probe for Docker and load balancers.
How:   Reports whether provider credentials are configured. It does not call
       the provider: a remote outage should not take this instance out of
       rotation, and per-request failures already surface as 500s.

Status levels:
    - healthy:  provider configured
    - degraded: provider credentials missing (every /api call will fail)
"""

import time

from fastapi import APIRouter, Request

from notecraft import __version__
from notecraft.schemas.note import HealthResponse

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(request: Request) -> HealthResponse:
    configured = request.app.state.settings.provider_configured
    return HealthResponse(
        status="healthy" if configured else "degraded",
        version=__version__,
        provider="configured" if configured else "missing",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
