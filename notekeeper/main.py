"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notekeeper.api import auth, debug, notes
from notekeeper.config import get_settings
from notekeeper.errors import ErrorKind, NotekeeperError

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logging.getLogger("notekeeper").setLevel(settings.log_level.upper())
    if not settings.is_configured:
        logger.warning(
            "Auth provider is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
        )
    yield


app = FastAPI(
    title="Notekeeper API",
    description="Personal notes backed by a hosted auth provider and Postgres",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(NotekeeperError)
async def notekeeper_error_handler(request: Request, exc: NotekeeperError):
    """Render a classified failure as status code plus short message."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report invalid or missing body fields as a 400 VALIDATION error."""
    fields = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(location) or "body"
        if field not in fields:
            fields.append(field)
    error = NotekeeperError(
        ErrorKind.VALIDATION, f"Invalid or missing field: {', '.join(fields)}", fields=fields
    )
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Log unexpected failures and return a generic 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = NotekeeperError(ErrorKind.SERVER_ERROR)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Register routers
app.include_router(auth.router)
app.include_router(notes.router)
app.include_router(debug.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
