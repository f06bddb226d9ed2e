"""
NoteCraft Backend — Notes Route Handlers
=========================================

What:  CRUD endpoints under /api/notes.
How:   Each handler takes the Principal and IdentityClient bound by the
       session middleware, delegates to NoteService, and wraps the result in
       the response envelope.

Every route here sits in the authenticated zone: a request without a
resolvable bearer credential is answered 401 by the middleware and never
reaches these functions.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from notecraft.middleware.session import get_identity_client, require_principal
from notecraft.provider.identity import IdentityClient
from notecraft.schemas.auth import Principal
from notecraft.schemas.note import (
    DeleteResponse,
    ErrorResponse,
    NoteEnvelope,
    NoteListResponse,
    NoteWrite,
)
from notecraft.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid bearer credential", "model": ErrorResponse}}


def get_note_service(request: Request) -> NoteService:
    return NoteService(table=request.app.state.settings.notes_table)


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={**_AUTH_ERRORS, 500: {"description": "Provider error", "model": ErrorResponse}},
    summary="List the caller's notes, newest first",
)
async def list_notes(
    principal: Principal = Depends(require_principal),
    identity: IdentityClient = Depends(get_identity_client),
    service: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    notes = await service.list_notes(identity, principal)
    return NoteListResponse(notes=notes)


@router.get(
    "/notes/{note_id}",
    response_model=NoteEnvelope,
    responses={**_AUTH_ERRORS, 404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a single note by ID",
)
async def get_note(
    note_id: str,
    response: Response,
    principal: Principal = Depends(require_principal),
    identity: IdentityClient = Depends(get_identity_client),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    """
    A note owned by someone else answers exactly like a missing one (404).
    """
    note = await service.get_note(identity, principal, note_id)
    # User-specific content must not land in shared caches
    response.headers["Cache-Control"] = "private, no-store"
    return NoteEnvelope(note=note)


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteEnvelope,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Title missing or body invalid", "model": ErrorResponse},
        500: {"description": "Provider error", "model": ErrorResponse},
    },
    summary="Create a note owned by the caller",
)
async def create_note(
    payload: NoteWrite,
    principal: Principal = Depends(require_principal),
    identity: IdentityClient = Depends(get_identity_client),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note = await service.create_note(identity, principal, payload.title, payload.content)
    return NoteEnvelope(note=note)


@router.put(
    "/notes/{note_id}",
    response_model=NoteEnvelope,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Title missing or body invalid", "model": ErrorResponse},
        404: {"description": "Note not found or access denied", "model": ErrorResponse},
    },
    summary="Replace a note's title and content",
)
async def update_note(
    note_id: str,
    payload: NoteWrite,
    principal: Principal = Depends(require_principal),
    identity: IdentityClient = Depends(get_identity_client),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note = await service.update_note(identity, principal, note_id, payload.title, payload.content)
    return NoteEnvelope(note=note)


@router.delete(
    "/notes/{note_id}",
    response_model=DeleteResponse,
    responses={**_AUTH_ERRORS, 500: {"description": "Provider error", "model": ErrorResponse}},
    summary="Delete a note",
)
async def delete_note(
    note_id: str,
    principal: Principal = Depends(require_principal),
    identity: IdentityClient = Depends(get_identity_client),
    service: NoteService = Depends(get_note_service),
) -> DeleteResponse:
    """
    Reports success even when nothing matched (id, owner): a missing note and
    a note owned by someone else both look like an already-deleted one.
    """
    await service.delete_note(identity, principal, note_id)
    return DeleteResponse(success=True)
