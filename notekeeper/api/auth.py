"""Authentication API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from notekeeper.api.dependencies import get_bearer_token, get_current_user
from notekeeper.errors import ErrorKind, NotekeeperError
from notekeeper.schemas.auth import (
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    SessionResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from notekeeper.services.provider import AuthProvider, ProviderUser, get_auth_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

REGISTER_MESSAGES = {
    ErrorKind.RATE_LIMITED: (
        "Too many registration attempts. Please wait a few minutes and try again."
    ),
    ErrorKind.SERVER_ERROR: "Failed to create account. Please try again later.",
}


def _user_response(user: ProviderUser, fallback_name: str | None = None) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name or fallback_name)


@router.post("/register", response_model=RegisterResponse, response_model_exclude_none=True)
async def register(
    user_data: UserRegister,
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """Register a new user with the auth provider."""
    try:
        created = await provider.sign_up(user_data.email, user_data.password, user_data.name)
    except NotekeeperError as e:
        message = REGISTER_MESSAGES.get(e.kind, e.message)
        if e.kind in (ErrorKind.ALREADY_EXISTS, ErrorKind.RATE_LIMITED, ErrorKind.VALIDATION):
            raise NotekeeperError(e.kind, message) from e
        raise NotekeeperError(ErrorKind.SERVER_ERROR, REGISTER_MESSAGES[ErrorKind.SERVER_ERROR]) from e

    user = _user_response(created.user, user_data.name)
    if not created.is_active:
        return RegisterResponse(
            message="Account created! Please check your email to confirm your account.",
            user=user,
            needs_confirmation=True,
        )

    return RegisterResponse(
        message="Account created successfully!",
        user=user,
        session=SessionResponse.model_validate(created),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserLogin,
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """Login with email and password."""
    try:
        session = await provider.sign_in_with_password(credentials.email, credentials.password)
    except NotekeeperError as e:
        if e.kind in (ErrorKind.RATE_LIMITED, ErrorKind.INVALID_CREDENTIALS, ErrorKind.NETWORK_ERROR):
            raise
        if e.kind is ErrorKind.VALIDATION:
            raise NotekeeperError(ErrorKind.INVALID_CREDENTIALS) from e
        raise NotekeeperError(ErrorKind.SERVER_ERROR) from e

    return LoginResponse(
        message="Login successful",
        user=_user_response(session.user),
        session=SessionResponse.model_validate(session),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[ProviderUser, Depends(get_current_user)],
):
    """Get current user information."""
    return _user_response(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: Annotated[str, Depends(get_bearer_token)],
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
):
    """Revoke the session behind the bearer token."""
    try:
        await provider.sign_out(token)
    except NotekeeperError as e:
        logger.error(f"Error signing out: {e.kind}")
    return MessageResponse(message="Logged out successfully")
