"""
NoteCraft Backend — Note Table Definition
==========================================

What:  ORM mapping of the ``notes`` table as it lives in the provider's
       Postgres database.
Who:   Read by Alembic; the API itself reaches the table through the
       provider's REST interface, never through this model.

Table Design:
    - id:         UUID, generated server-side
    - user_id:    owner; references auth.users(id), cascades on user deletion
    - title:      trimmed, non-empty (enforced by the service and a CHECK)
    - content:    free text, defaults to ''
    - created_at / updated_at: UTC, timezone-aware

    Index on (user_id, created_at DESC) serves the only list query:
    "my notes, newest first".
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from notecraft.database import Base


class Note(Base):
    """
    A note owned by exactly one Principal.

    ``user_id`` is set on insert and never changes afterwards.
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # auth.users lives in the provider's schema; the FK is added in the migration
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Owning Principal (auth.users.id)",
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("now()"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("now()"),
        comment="Refreshed by the API on every update",
    )

    __table_args__ = (
        CheckConstraint("length(btrim(title)) > 0", name="ck_notes_title_not_blank"),
        Index("idx_notes_user_created_at", user_id, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id}, title={self.title!r})>"
