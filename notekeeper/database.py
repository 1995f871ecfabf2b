"""Database configuration and session management."""

import json
import logging
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session, SessionTransaction, declarative_base, sessionmaker

from notekeeper.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
if settings.database_url.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    _engine_kwargs.update(pool_size=5, max_overflow=10)

engine = create_engine(settings.database_url, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base: Any = declarative_base()

IDENTITY_KEY = "acting_user_id"


def get_db() -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from notekeeper import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def _apply_identity(session: Session, transaction: SessionTransaction, connection: Connection):
    """Assume the row-level-security role for the acting user."""
    user_id = session.info.get(IDENTITY_KEY)
    role = settings.database_rls_role
    if user_id is None or not role or connection.dialect.name != "postgresql":
        return

    claims = json.dumps({"sub": user_id, "role": role})
    connection.execute(
        text("select set_config('request.jwt.claims', :claims, true)"),
        {"claims": claims},
    )
    connection.execute(text(f"set local role {connection.dialect.identifier_preparer.quote(role)}"))
    logger.debug(f"Transaction bound to user {user_id} as role {role}")


def bind_identity(db: Session, user_id: str) -> None:
    """Tie every transaction of this session to the acting user.

    On PostgreSQL with ``database_rls_role`` configured, each transaction starts
    by assuming that role and publishing the user's claims, so the notes
    table's row-level policies (``auth.uid() = user_id``) apply to every
    statement.
    """
    db.info[IDENTITY_KEY] = str(user_id)
    if not settings.database_rls_role or db.get_bind().dialect.name != "postgresql":
        return
    if not event.contains(db, "after_begin", _apply_identity):
        event.listen(db, "after_begin", _apply_identity)
    if db.in_transaction():
        # Transaction opened before the identity was known
        _apply_identity(db, db.get_transaction(), db.connection())
