"""SQLAlchemy models."""

from notekeeper.models.note import Note

__all__ = [
    "Note",
]
