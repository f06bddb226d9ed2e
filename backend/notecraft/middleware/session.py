"""
NoteCraft Backend — Session Middleware
=======================================

What:  Resolves the calling Principal for every request entering the API.
How:   For each ``/api`` request:
         1. Build a request-scoped IdentityClient bound to the incoming
            ``Authorization`` header (absent → anonymous).
         2. For the authenticated zone (``/api/notes`` and below) ask the
            provider for the current user. Success binds
            ``Principal{id, email}`` to ``request.state.principal``; anything
            else answers 401 before a route handler runs.
         3. Close the client once the response has been produced.
Who:   Installed by ``create_app()``; route handlers read the results through
       ``get_identity_client`` / ``require_principal``.

No retries, no caching, no token refresh: every request resolves afresh.

Because this runs as Starlette middleware, errors are rendered here directly
(FastAPI's exception handlers sit further inside the stack).
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notecraft.exceptions import ConfigMissingError, NoteCraftError, UnauthorizedError
from notecraft.middleware.request_id import request_id_var
from notecraft.provider.identity import IdentityClient
from notecraft.provider.results import ProviderErr, ProviderOk
from notecraft.schemas.auth import Principal

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"
PROTECTED_PREFIX = "/api/notes"


def error_response(exc: NoteCraftError) -> JSONResponse:
    """Render an application error as ``{"error": message, "request_id": id}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "request_id": request_id_var.get("")},
    )


def is_protected(path: str) -> bool:
    return path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")


class SessionMiddleware(BaseHTTPMiddleware):
    """Per-request identity client and Principal resolution."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not path.startswith(API_PREFIX):
            return await call_next(request)

        factory = request.app.state.identity_factory
        try:
            identity = factory.create(request.headers.get("Authorization"))
        except ConfigMissingError as exc:
            logger.error("[%s] %s", request_id_var.get(""), exc.message)
            return error_response(exc)

        async with identity:
            request.state.identity = identity
            request.state.principal = None

            if is_protected(path):
                result = await identity.get_user()
                match result:
                    case ProviderOk(value=principal):
                        request.state.principal = principal
                    case ProviderErr(message=message):
                        logger.info(
                            "[%s] Rejected %s %s: %s",
                            request_id_var.get(""),
                            request.method,
                            path,
                            message,
                        )
                        return error_response(UnauthorizedError())

            return await call_next(request)


# ── Route Dependencies ────────────────────────────────────────────────────


def get_identity_client(request: Request) -> IdentityClient:
    """The IdentityClient the middleware bound to this request."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise ConfigMissingError()
    return identity


def require_principal(request: Request) -> Principal:
    """
    The resolved Principal, or UnauthorizedError when none was bound.

    Guards handlers even if a route is ever mounted outside the
    authenticated zone.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise UnauthorizedError()
    return principal
