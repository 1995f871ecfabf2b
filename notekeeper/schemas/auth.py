"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PASSWORD_MIN_LENGTH = 6


class UserRegister(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()


class UserLogin(BaseModel):
    """User login request."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None
    name: str | None = None


class SessionResponse(BaseModel):
    """Provider-issued session tokens."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"  # noqa: S105
    expires_in: int | None = None


class RegisterResponse(BaseModel):
    """Registration response; the session is absent when confirmation is pending."""

    message: str
    user: UserResponse
    session: SessionResponse | None = None
    needs_confirmation: bool | None = Field(None, serialization_alias="needsConfirmation")


class LoginResponse(BaseModel):
    """Login response with user info and session tokens."""

    message: str
    user: UserResponse
    session: SessionResponse


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
