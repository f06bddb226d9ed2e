"""
NoteCraft Backend — Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   FastAPI uses these models to validate request bodies, serialize responses,
       and generate the OpenAPI documentation.

Envelope shapes follow the frontend's expectations:
    GET  /api/notes        → {"notes": [...]}
    GET  /api/notes/{id}   → {"note": {...}}
    POST /api/notes        → {"note": {...}}   (201)
    PUT  /api/notes/{id}   → {"note": {...}}
    DELETE /api/notes/{id} → {"success": true}
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class NoteWrite(BaseModel):
    """
    Body of POST /api/notes and PUT /api/notes/{id}.

    Both fields are optional at the schema level so that a missing title
    reaches the service and is reported as "Title is required" (400) rather
    than a schema error. Any owner field in the body is ignored.
    """
    title: Optional[str] = Field(default=None, description="Note title; trimmed, must not be empty")
    content: Optional[str] = Field(default=None, description="Note body; trimmed, defaults to empty")


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """A single note row as stored by the provider."""
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    user_id: str = Field(description="Owner's Principal id")
    title: str = Field(description="Trimmed, non-empty title")
    content: str = Field(default="", description="Note body")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When title/content last changed (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NoteListResponse(BaseModel):
    """Owned notes, most recently created first."""
    notes: List[NoteResponse] = Field(description="Notes owned by the caller")


class DeleteResponse(BaseModel):
    success: bool = Field(default=True)


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {"error": "Note not found", "request_id": "1a2b3c4d"}
    """
    error: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    provider: str = Field(description="Provider configuration: configured, missing")
    uptime_seconds: float = Field(description="Seconds since service started")
