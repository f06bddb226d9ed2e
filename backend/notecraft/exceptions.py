"""
NoteCraft Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message, an optional context dict, and
       the HTTP status it maps to. Global exception handlers (registered in
       main.py) and the session middleware render them as
       ``{"error": message, "request_id": ...}``.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    NoteCraftError (base)
    ├── ConfigMissingError     → 500 (provider credentials absent)
    ├── UnauthorizedError      → 401 (no/invalid bearer credential)
    ├── NotFoundError          → 404 (absent OR owned by someone else)
    ├── ValidationError        → 400 (client can fix)
    ├── UpstreamError          → 500 (provider call failed, message passed through)
    └── CallbackTimeoutError   → client side only, never rendered over HTTP
"""

from typing import Any, Dict, Optional


class NoteCraftError(Exception):
    """
    Base exception for all NoteCraft application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigMissingError(NoteCraftError):
    """
    Raised when the provider URL or anon key is not configured.

    HTTP:    500 Internal Server Error
    When:    Any /api request while SUPABASE_URL / SUPABASE_ANON_KEY are unset.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Supabase configuration missing",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnauthorizedError(NoteCraftError):
    """
    Raised when a protected route is reached without a resolvable Principal.

    HTTP:    401 Unauthorized
    When:    Authorization header absent, not a bearer token, or rejected by
             the provider's "get current user" call.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteCraftError):
    """
    Raised when a requested note does not exist for the calling Principal.

    HTTP:    404 Not Found

    A note owned by another Principal raises exactly this error with exactly
    the same message as a missing one, so responses never reveal whether the
    id exists for somebody else.
    """

    status_code = 404

    def __init__(
        self,
        message: str = "Note not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ValidationError(NoteCraftError):
    """
    Raised when client input fails a business rule.

    HTTP:    400 Bad Request
    When:    Title empty after trimming, request body not a JSON object.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UpstreamError(NoteCraftError):
    """
    Raised when a provider call fails.

    HTTP:    500 Internal Server Error
    The provider's own message is passed through to the client; the status
    code and table name stay in ``context`` for the logs.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Upstream provider request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CallbackTimeoutError(NoteCraftError):
    """
    The provider session client never became available during callback
    reconciliation. Reported through the ``oauth-error`` notification.
    """

    def __init__(self, attempts: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["attempts"] = attempts
        super().__init__(message="Provider client unavailable", context=ctx)
        self.attempts = attempts
