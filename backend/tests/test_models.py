"""
NoteCraft — Notes Table Definition Tests
"""

from types import SimpleNamespace

from notecraft.database import Base, include_object
from notecraft.models.note import Note


class TestNoteTable:

    def test_registered_with_metadata(self):
        assert Base.metadata.tables["notes"] is Note.__table__

    def test_columns(self):
        columns = Note.__table__.c
        assert set(columns.keys()) == {"id", "user_id", "title", "content", "created_at", "updated_at"}
        assert columns.id.primary_key
        assert not columns.user_id.nullable
        assert columns.content.server_default is not None

    def test_owner_index_is_newest_first(self):
        (index,) = [i for i in Note.__table__.indexes if i.name == "idx_notes_user_created_at"]
        expressions = [str(e) for e in index.expressions]
        assert expressions[0].endswith("user_id")
        assert "DESC" in expressions[1]

    def test_blank_title_check(self):
        names = {c.name for c in Note.__table__.constraints}
        assert "ck_notes_title_not_blank" in names


class TestMigrationFilter:

    def test_own_tables_included(self):
        assert include_object(Note.__table__, "notes", "table", False, None)
        assert include_object(SimpleNamespace(schema="public"), "notes", "table", True, None)

    def test_provider_schemas_skipped(self):
        users = SimpleNamespace(schema="auth")
        assert not include_object(users, "users", "table", True, None)
        assert not include_object(SimpleNamespace(schema="storage"), "objects", "table", True, None)
