"""
NoteCraft — Identity Schemas
=============================

What:  Pydantic models for the identities the provider hands back.
Who:   Produced by the provider clients (server and browser side); consumed by
       the session middleware, the auth route, and the callback reconciler.

Principal is read-only to this system: it is only ever built from a provider
response, never from client-supplied request data.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Principal(BaseModel):
    """The authenticated identity behind a request or browser session."""

    id: str = Field(description="Provider user id (opaque)")
    email: str = Field(default="", description="Primary email, empty when the provider has none")

    model_config = {"frozen": True}

    @classmethod
    def from_provider_user(cls, user: Dict[str, Any]) -> "Principal":
        """Keep only ``id`` and ``email`` from a GoTrue user object."""
        return cls(id=str(user["id"]), email=user.get("email") or "")


class Session(BaseModel):
    """
    A provider session: bearer credential plus the Principal it belongs to.

    Held only by the browser-side session client; the server never stores it.
    """

    access_token: str
    refresh_token: str = ""
    expires_in: int = 0
    token_type: str = "bearer"
    user: Principal

    model_config = {"frozen": True}

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


class UserResponse(BaseModel):
    """Body of GET /api/auth/user; ``user`` is null for anonymous callers."""

    user: Optional[Principal] = None
