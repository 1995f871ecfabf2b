"""Note model."""

import uuid

from sqlalchemy import Column, String, Text, Uuid

from notekeeper.database import Base
from notekeeper.models.mixins import TimestampMixin

TITLE_MAX_LENGTH = 500


class Note(Base, TimestampMixin):
    """A personal text note owned by exactly one provider user.

    ``user_id`` references the provider's user table, which lives outside this
    application's metadata, so the foreign key is created by the migration.
    """

    __tablename__ = "notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    content = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Note {self.id} user={self.user_id}>"
