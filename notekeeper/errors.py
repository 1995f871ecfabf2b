"""Classified errors shared by every layer."""

from enum import StrEnum

from fastapi import status


class ErrorKind(StrEnum):
    """Fixed taxonomy every failure is mapped to before crossing a layer."""

    VALIDATION = "VALIDATION"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    SERVER_ERROR = "SERVER_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"


DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Invalid request",
    ErrorKind.UNAUTHENTICATED: "Invalid or expired token",
    ErrorKind.UNAUTHORIZED: "Not authorized",
    ErrorKind.NOT_FOUND: "Note not found",
    ErrorKind.RATE_LIMITED: "Too many attempts. Please wait a few minutes and try again.",
    ErrorKind.ALREADY_EXISTS: (
        "An account with this email already exists. Please try logging in instead."
    ),
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.SERVER_ERROR: "Internal server error. Please try again.",
    ErrorKind.STORAGE_ERROR: "Failed to access notes. Please try again.",
    ErrorKind.NETWORK_ERROR: "Network error. Please check your connection and try again.",
}

HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}

# Kinds whose message is safe and useful to show as-is
VERBATIM_KINDS = frozenset(
    {
        ErrorKind.VALIDATION,
        ErrorKind.RATE_LIMITED,
        ErrorKind.ALREADY_EXISTS,
        ErrorKind.INVALID_CREDENTIALS,
    }
)

GENERIC_MESSAGE = "Something went wrong. Please try again."


class NotekeeperError(Exception):
    """A failure already mapped to an ErrorKind."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        fields: list[str] | None = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.message = message or DEFAULT_MESSAGES[self.kind]
        self.fields = fields or []
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status for this kind of failure."""
        return http_status_for(self.kind)

    def to_dict(self) -> dict:
        """JSON body returned to clients."""
        body: dict = {"error": self.message, "code": self.kind.value}
        if self.fields:
            body["fields"] = self.fields
        return body


def http_status_for(kind: ErrorKind) -> int:
    """Map a classified failure to its HTTP status code."""
    return HTTP_STATUS.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def user_message(kind: ErrorKind | str | None, message: str | None) -> str:
    """Message a user interface should display for a failure."""
    if kind is not None and kind in VERBATIM_KINDS and message:
        return message
    return GENERIC_MESSAGE
