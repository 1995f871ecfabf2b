"""Note API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from notekeeper.api.dependencies import get_note_repository
from notekeeper.schemas.auth import MessageResponse
from notekeeper.schemas.note import (
    NoteCreate,
    NoteEnvelope,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)
from notekeeper.services.note_repository import NoteRepository

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=NoteListResponse)
async def list_notes(
    notes: Annotated[NoteRepository, Depends(get_note_repository)],
):
    """Get all notes of the current user, most recently updated first."""
    return NoteListResponse(
        notes=[NoteResponse.model_validate(note) for note in notes.list_by_user()]
    )


@router.post("", response_model=NoteEnvelope)
async def create_note(
    note_data: NoteCreate,
    notes: Annotated[NoteRepository, Depends(get_note_repository)],
):
    """Create a new note."""
    note = notes.create(note_data.title, note_data.content)
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.get("/{note_id}", response_model=NoteEnvelope)
async def get_note(
    note_id: str,
    notes: Annotated[NoteRepository, Depends(get_note_repository)],
):
    """Get a specific note."""
    return NoteEnvelope(note=NoteResponse.model_validate(notes.get_by_id(note_id)))


@router.put("/{note_id}", response_model=NoteEnvelope)
async def update_note(
    note_id: str,
    note_data: NoteUpdate,
    notes: Annotated[NoteRepository, Depends(get_note_repository)],
):
    """Replace the title and content of a note."""
    note = notes.update(note_id, note_data.title, note_data.content)
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.delete("/{note_id}", response_model=MessageResponse)
async def delete_note(
    note_id: str,
    notes: Annotated[NoteRepository, Depends(get_note_repository)],
):
    """Delete a note permanently."""
    notes.delete(note_id)
    return MessageResponse(message="Note deleted successfully")
