"""
NoteCraft Backend — Request Logging Middleware
===============================================

What:  One access-log line per HTTP request: method, path, status, duration,
       and the resolved Principal id when there is one.
When:  Runs inside RequestIDMiddleware so the request ID is already set, and
       outside SessionMiddleware so the Principal is known by the time the
       response comes back.

Never logged: request bodies (note content), the Authorization header, and
email addresses.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notecraft.middleware.request_id import request_id_var

logger = logging.getLogger("notecraft.access")

# Probed every few seconds by Docker and load balancers
QUIET_PATHS = frozenset({"/health"})


def level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request at a level chosen by its status class:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        # Bound by the session middleware further in; None for anonymous calls
        principal = getattr(request.state, "principal", None)
        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "principal_id": principal.id if principal is not None else None,
        }
        logger.log(
            level_for(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] user=%(principal_id)s",
            fields,
            extra=fields,
        )
        return response
