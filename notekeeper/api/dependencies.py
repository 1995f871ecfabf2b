"""FastAPI dependencies for authentication and database."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from notekeeper.database import get_db
from notekeeper.errors import ErrorKind, NotekeeperError
from notekeeper.services.auth import resolve_user
from notekeeper.services.note_repository import NoteRepository
from notekeeper.services.provider import AuthProvider, ProviderUser, get_auth_provider

security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract the bearer token or fail with UNAUTHENTICATED."""
    if credentials is None or not credentials.credentials:
        raise NotekeeperError(ErrorKind.UNAUTHENTICATED, "No authorization header")
    return credentials.credentials


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
) -> ProviderUser:
    """Get the current authenticated user from the bearer token."""
    return await resolve_user(provider, token)


def get_note_repository(
    current_user: Annotated[ProviderUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> NoteRepository:
    """Get a note repository scoped to the current user."""
    return NoteRepository(db, current_user.id)
