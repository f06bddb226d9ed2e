"""
NoteCraft Backend — Note Service (Business Logic)
==================================================

What:  CRUD over the note entity for one resolved Principal.
How:   Delegates persistence to the provider through a request-scoped
       ``IdentityClient`` and owns the two rules the provider is not trusted
       with: field validation and the ownership predicate.
Who:   Called by the /api/notes route handlers.

Ownership predicate:
    Every select/update/delete carries ``user_id = principal.id`` next to any
    ``id`` filter, and every insert stamps ``user_id`` from the Principal.
    A row owned by someone else therefore simply never matches, and the
    caller sees the same NotFoundError as for an id that does not exist.

Error translation:
    get / update  provider error → NotFoundError
    list / create provider error → UpstreamError (message passed through)
    delete        provider error → UpstreamError("Failed to delete note")
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from notecraft.exceptions import NotFoundError, UpstreamError, ValidationError
from notecraft.provider.identity import IdentityClient
from notecraft.provider.results import ProviderErr, ProviderOk
from notecraft.schemas.auth import Principal
from notecraft.schemas.note import NoteResponse

logger = logging.getLogger(__name__)


def clean_fields(title: Optional[str], content: Optional[str]) -> Tuple[str, str]:
    """
    Trim title and content; reject a title that is empty after trimming.

    Raises:
        ValidationError: title missing or whitespace only
    """
    cleaned_title = (title or "").strip()
    if not cleaned_title:
        raise ValidationError(message="Title is required", field="title")
    return cleaned_title, (content or "").strip()


class NoteService:
    """
    Stateless note operations; the identity client and Principal are passed
    in per call.
    """

    def __init__(self, table: str = "notes"):
        self.table = table

    async def list_notes(self, identity: IdentityClient, principal: Principal) -> List[NoteResponse]:
        """All notes owned by ``principal``, newest first."""
        result = await identity.select(
            self.table,
            filters={"user_id": principal.id},
            order=("created_at", True),
        )
        match result:
            case ProviderOk(value=rows):
                return [NoteResponse.model_validate(row) for row in rows]
            case ProviderErr(message=message, status=status):
                logger.error("Listing notes for %s failed: %s", principal.id, message)
                raise UpstreamError(message=message, context={"status": status, "table": self.table})

    async def get_note(self, identity: IdentityClient, principal: Principal, note_id: str) -> NoteResponse:
        """
        Raises:
            NotFoundError: no row matches (id, owner), or the provider refused
        """
        result = await identity.select(
            self.table,
            filters={"id": note_id, "user_id": principal.id},
        )
        match result:
            case ProviderOk(value=[row, *_]):
                return NoteResponse.model_validate(row)
            case ProviderOk():
                raise NotFoundError(context={"note_id": note_id})
            case ProviderErr(message=message):
                logger.info("Fetching note %s failed upstream: %s", note_id, message)
                raise NotFoundError(context={"note_id": note_id, "upstream": message})

    async def create_note(
        self,
        identity: IdentityClient,
        principal: Principal,
        title: Optional[str],
        content: Optional[str],
    ) -> NoteResponse:
        """
        Raises:
            ValidationError: empty title
            UpstreamError: provider rejected the insert
        """
        clean_title, clean_content = clean_fields(title, content)
        result = await identity.insert(
            self.table,
            {"user_id": principal.id, "title": clean_title, "content": clean_content},
        )
        match result:
            case ProviderOk(value=[row, *_]):
                note = NoteResponse.model_validate(row)
                logger.info("Note %s created for %s", note.id, principal.id)
                return note
            case ProviderOk():
                raise UpstreamError(message="Provider returned no row for insert", context={"table": self.table})
            case ProviderErr(message=message, status=status):
                logger.error("Creating note for %s failed: %s", principal.id, message)
                raise UpstreamError(message=message, context={"status": status, "table": self.table})

    async def update_note(
        self,
        identity: IdentityClient,
        principal: Principal,
        note_id: str,
        title: Optional[str],
        content: Optional[str],
    ) -> NoteResponse:
        """
        Replace title/content and refresh ``updated_at``.

        Raises:
            ValidationError: empty title
            NotFoundError: no row matches (id, owner)
        """
        clean_title, clean_content = clean_fields(title, content)
        result = await identity.update(
            self.table,
            {
                "title": clean_title,
                "content": clean_content,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            filters={"id": note_id, "user_id": principal.id},
        )
        match result:
            case ProviderOk(value=[row, *_]):
                return NoteResponse.model_validate(row)
            case ProviderOk():
                raise NotFoundError(message="Note not found or access denied", context={"note_id": note_id})
            case ProviderErr(message=message):
                logger.info("Updating note %s failed upstream: %s", note_id, message)
                raise NotFoundError(
                    message="Note not found or access denied",
                    context={"note_id": note_id, "upstream": message},
                )

    async def delete_note(self, identity: IdentityClient, principal: Principal, note_id: str) -> None:
        """
        Remove the (id, owner) row. Succeeds whether or not a row matched.

        Raises:
            UpstreamError: provider rejected the delete
        """
        result = await identity.delete(
            self.table,
            filters={"id": note_id, "user_id": principal.id},
        )
        match result:
            case ProviderOk(value=[]):
                logger.debug("Delete of note %s by %s matched no rows", note_id, principal.id)
            case ProviderOk():
                logger.info("Note %s deleted by %s", note_id, principal.id)
            case ProviderErr(message=message, status=status):
                logger.error("Deleting note %s failed: %s", note_id, message)
                raise UpstreamError(
                    message="Failed to delete note",
                    context={"note_id": note_id, "status": status, "upstream": message},
                )
