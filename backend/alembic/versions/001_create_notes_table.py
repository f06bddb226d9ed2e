"""Create notes table with row-level security

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  Creates the ``notes`` table, its owner index, and the row-level
       security policies that restrict every row to its owner.
How:   The API reaches this table through the provider with the caller's
       bearer token, so ``auth.uid()`` in the policies is that caller. The
       API also filters by ``user_id`` itself; the policies hold even for a
       client talking to the provider directly.

Rollback: downgrade() drops the table (destructive, all notes are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

POLICIES = {
    "notes_select_own": "FOR SELECT USING (auth.uid() = user_id)",
    "notes_insert_own": "FOR INSERT WITH CHECK (auth.uid() = user_id)",
    "notes_update_own": "FOR UPDATE USING (auth.uid() = user_id) WITH CHECK (auth.uid() = user_id)",
    "notes_delete_own": "FOR DELETE USING (auth.uid() = user_id)",
}


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Owning Principal (auth.users.id)",
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Refreshed by the API on every update",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["auth.users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("length(btrim(title)) > 0", name="ck_notes_title_not_blank"),
    )

    # Serves "my notes, newest first"
    op.create_index(
        "idx_notes_user_created_at",
        "notes",
        ["user_id", sa.text("created_at DESC")],
    )

    op.execute("ALTER TABLE notes ENABLE ROW LEVEL SECURITY")
    for name, clause in POLICIES.items():
        op.execute(f"CREATE POLICY {name} ON notes {clause}")


def downgrade() -> None:
    for name in POLICIES:
        op.execute(f"DROP POLICY IF EXISTS {name} ON notes")
    op.drop_index("idx_notes_user_created_at", table_name="notes")
    op.drop_table("notes")
