"""
NoteCraft Backend — Request ID Middleware
==========================================

What:  Assigns a correlation ID to each request and echoes it in the response.
How:   Reuses a client-supplied ``X-Request-ID`` of up to 64 printable
       characters or generates a short UUID, then stores it in a ContextVar
       for loggers and error handlers and sets the response header.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Longer client values are replaced, not echoed into logs and error bodies
MAX_REQUEST_ID_LENGTH = 64


def new_request_id() -> str:
    # 8 chars is enough for correlation and stays readable in logs
    return str(uuid.uuid4())[:8]


def accept_request_id(supplied: Optional[str]) -> str:
    """The client's ``X-Request-ID`` when it is short and printable, else a fresh one."""
    if supplied and len(supplied) <= MAX_REQUEST_ID_LENGTH and supplied.isprintable():
        return supplied
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get("X-Request-ID"))

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
