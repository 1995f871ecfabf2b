"""Owner-scoped access to the notes table."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from notekeeper.database import bind_identity
from notekeeper.errors import ErrorKind, NotekeeperError
from notekeeper.models.note import Note

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _parse_id(note_id: UUID | str) -> UUID | None:
    if isinstance(note_id, UUID):
        return note_id
    try:
        return UUID(str(note_id))
    except ValueError:
        return None


def _require_text(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise NotekeeperError(
            ErrorKind.VALIDATION,
            f"{' and '.join(name.capitalize() for name in missing)} required",
            fields=missing,
        )


class NoteRepository:
    """CRUD over the notes of one acting user.

    The acting user is bound once, from the resolved session; no method accepts
    an owner, so callers cannot read or write on behalf of someone else. Every
    statement filters on ``user_id`` in addition to the row-level policies the
    database enforces.
    """

    def __init__(self, db: Session, user_id: UUID | str):
        self.db = db
        self.user_id = UUID(str(user_id))
        bind_identity(db, str(self.user_id))

    def _run(self, operation: str, work: Callable[[], T]) -> T:
        try:
            return work()
        except NotekeeperError:
            self.db.rollback()
            raise
        except DBAPIError as e:
            self.db.rollback()
            logger.error(f"Database failure during {operation} for user {self.user_id}: {e}")
            kind = ErrorKind.NETWORK_ERROR if e.connection_invalidated else ErrorKind.STORAGE_ERROR
            raise NotekeeperError(kind) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Storage failure during {operation} for user {self.user_id}: {e}")
            raise NotekeeperError(ErrorKind.STORAGE_ERROR) from e

    def _owned(self, note_id: UUID | str) -> Note:
        parsed = _parse_id(note_id)
        note = None
        if parsed is not None:
            note = self.db.execute(
                select(Note).where(Note.id == parsed, Note.user_id == self.user_id)
            ).scalar_one_or_none()
        if note is None:
            raise NotekeeperError(ErrorKind.NOT_FOUND)
        return note

    def list_by_user(self) -> list[Note]:
        """All notes of the acting user, most recently updated first."""

        def work() -> list[Note]:
            query = (
                select(Note)
                .where(Note.user_id == self.user_id)
                .order_by(Note.updated_at.desc(), Note.created_at.desc())
            )
            return list(self.db.execute(query).scalars().all())

        return self._run("list", work)

    def get_by_id(self, note_id: UUID | str) -> Note:
        """A note of the acting user; foreign and missing notes are both NOT_FOUND."""
        return self._run("get", lambda: self._owned(note_id))

    def create(self, title: str, content: str) -> Note:
        """Persist a new note for the acting user."""
        _require_text(title=title, content=content)

        def work() -> Note:
            now = utcnow()
            note = Note(
                user_id=self.user_id,
                title=title,
                content=content,
                created_at=now,
                updated_at=now,
            )
            self.db.add(note)
            self.db.commit()
            self.db.refresh(note)
            logger.info(f"Created note {note.id} for user {self.user_id}")
            return note

        return self._run("create", work)

    def update(self, note_id: UUID | str, title: str, content: str) -> Note:
        """Overwrite title and content, moving updated_at forward."""
        _require_text(title=title, content=content)

        def work() -> Note:
            note = self._owned(note_id)
            previous = _as_utc(note.updated_at)
            note.title = title
            note.content = content
            note.updated_at = max(utcnow(), previous + timedelta(microseconds=1))
            self.db.commit()
            self.db.refresh(note)
            return note

        return self._run("update", work)

    def delete(self, note_id: UUID | str) -> None:
        """Permanently remove a note of the acting user."""
        parsed = _parse_id(note_id)
        if parsed is None:
            raise NotekeeperError(ErrorKind.NOT_FOUND)

        def work() -> None:
            result = self.db.execute(
                delete(Note).where(Note.id == parsed, Note.user_id == self.user_id)
            )
            if result.rowcount == 0:
                raise NotekeeperError(ErrorKind.NOT_FOUND)
            self.db.commit()
            logger.info(f"Deleted note {parsed} for user {self.user_id}")

        return self._run("delete", work)
