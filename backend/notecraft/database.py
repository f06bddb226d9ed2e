"""
NoteCraft Backend — Schema Metadata
====================================

What:  Declarative base for the tables NoteCraft owns in the provider's
       Postgres database.
Why:   The API never opens a database connection itself (all data access
       goes through the provider with the caller's credential), but the
       ``notes`` table and its row-level security still have to be created.
       Alembic reads ``Base.metadata`` for that.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for NoteCraft's ORM table definitions."""

    pass


# Schemas NoteCraft migrates; the provider owns everything else (auth, storage, ...)
OWNED_SCHEMAS = (None, "public")


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Alembic autogenerate filter: skip objects in provider-owned schemas."""
    return getattr(obj, "schema", None) in OWNED_SCHEMAS
