"""Pydantic schemas for API requests and responses."""

from notekeeper.schemas.auth import (
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    SessionResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from notekeeper.schemas.note import (
    NoteCreate,
    NoteEnvelope,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "SessionResponse",
    "RegisterResponse",
    "LoginResponse",
    "MessageResponse",
    "NoteCreate",
    "NoteUpdate",
    "NoteResponse",
    "NoteEnvelope",
    "NoteListResponse",
]
