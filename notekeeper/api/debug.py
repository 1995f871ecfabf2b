"""Debug API endpoints for deployment troubleshooting."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notekeeper.config import Settings, get_settings
from notekeeper.database import get_db
from notekeeper.errors import NotekeeperError
from notekeeper.models.note import Note
from notekeeper.services.provider import AuthProvider, get_auth_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


class DiagnosticCheck(BaseModel):
    """Outcome of one configuration or connectivity check."""

    ok: bool
    detail: str


class DiagnosticsResponse(BaseModel):
    """Response for the diagnostics endpoint."""

    ok: bool
    config: DiagnosticCheck
    database: DiagnosticCheck
    provider: DiagnosticCheck


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def get_diagnostics(
    settings: Annotated[Settings, Depends(get_settings)],
    db: Annotated[Session, Depends(get_db)],
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """Check provider configuration, the notes table, and provider reachability.

    Details are limited to pass/fail summaries; underlying errors are logged.
    """
    if settings.is_configured:
        config = DiagnosticCheck(ok=True, detail="Provider URL and API key are set")
    else:
        config = DiagnosticCheck(
            ok=False, detail="Set SUPABASE_URL and SUPABASE_ANON_KEY in the environment"
        )

    try:
        db.execute(select(func.count()).select_from(Note)).scalar_one()
        database = DiagnosticCheck(ok=True, detail="Notes table is reachable")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Diagnostics database check failed: {e}")
        database = DiagnosticCheck(
            ok=False, detail="Notes table is not reachable; run the database migrations"
        )

    try:
        await provider.health()
        provider_check = DiagnosticCheck(ok=True, detail="Auth provider is reachable")
    except NotekeeperError as e:
        provider_check = DiagnosticCheck(ok=False, detail=f"Auth provider check failed: {e.kind}")

    return DiagnosticsResponse(
        ok=config.ok and database.ok and provider_check.ok,
        config=config,
        database=database,
        provider=provider_check,
    )
