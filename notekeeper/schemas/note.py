"""Note schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notekeeper.models.note import TITLE_MAX_LENGTH


class NoteBase(BaseModel):
    """Fields a user may write."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class NoteCreate(NoteBase):
    """Note creation request."""


class NoteUpdate(NoteBase):
    """Note update request; title and content are both replaced."""


class NoteResponse(BaseModel):
    """Note representation returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class NoteEnvelope(BaseModel):
    """Single note wrapper."""

    note: NoteResponse


class NoteListResponse(BaseModel):
    """All notes of the current user."""

    notes: list[NoteResponse]
