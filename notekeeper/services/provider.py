"""Client for the hosted auth provider's REST API."""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from notekeeper.config import Settings, get_settings
from notekeeper.errors import ErrorKind, NotekeeperError

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("rate limit", "429", "too many")
EXISTS_MARKERS = ("already registered", "already exists", "user_already_exists")
CREDENTIAL_MARKERS = ("invalid_grant", "invalid login", "invalid_credentials")

ModelT = TypeVar("ModelT", bound=BaseModel)


class ProviderUser(BaseModel):
    """Identity as issued by the provider."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> str | None:
        """Display name stored in the user's metadata."""
        return self.user_metadata.get("name") or self.user_metadata.get("display_name")


class ProviderSession(BaseModel):
    """A provider response carrying a user and, when active, its tokens."""

    user: ProviderUser
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "bearer"  # noqa: S105
    expires_in: int | None = None

    @property
    def is_active(self) -> bool:
        """False when the provider requires email confirmation first."""
        return self.access_token is not None


def _error_text(payload: Any) -> str:
    if isinstance(payload, dict):
        parts = [
            payload.get(key)
            for key in ("error_code", "error", "error_description", "msg", "message")
        ]
        return " ".join(str(part) for part in parts if part)
    return str(payload or "")


def _provider_message(payload: Any) -> str | None:
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message"):
            if isinstance(payload.get(key), str) and payload[key].strip():
                return payload[key]
    return None


def classify_auth_failure(status_code: int, payload: Any, operation: str = "") -> ErrorKind:
    """Map a failed provider response to an ErrorKind."""
    text = _error_text(payload).lower()

    if status_code == 429 or any(marker in text for marker in RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED
    if any(marker in text for marker in EXISTS_MARKERS):
        return ErrorKind.ALREADY_EXISTS
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    if operation == "sign_in" and (
        status_code in (400, 401) or any(marker in text for marker in CREDENTIAL_MARKERS)
    ):
        return ErrorKind.INVALID_CREDENTIALS
    if status_code in (401, 403) or operation in ("get_user", "refresh"):
        return ErrorKind.UNAUTHENTICATED
    return ErrorKind.VALIDATION


class AuthProvider:
    """Async wrapper over the provider's sign-up, sign-in and user endpoints."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.auth_url
        self.timeout = self.settings.provider_timeout
        self._transport = transport

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.settings.supabase_anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
        access_token: str | None = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=json,
                    params=params,
                    headers=self._headers(access_token),
                )
        except httpx.TransportError as e:
            logger.error(f"Auth provider unreachable during {operation}: {e}")
            raise NotekeeperError(ErrorKind.NETWORK_ERROR) from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            kind = classify_auth_failure(response.status_code, payload, operation)
            logger.warning(
                f"Auth provider rejected {operation} ({response.status_code}, {kind}): {payload}"
            )
            # Only validation messages (weak password, bad email) are meant for users
            message = _provider_message(payload) if kind is ErrorKind.VALIDATION else None
            raise NotekeeperError(kind, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Auth provider sent a non-JSON body for {operation} "
                f"({response.status_code}): {response.text[:200]}"
            )
            raise NotekeeperError(ErrorKind.SERVER_ERROR) from e

    @staticmethod
    def _parse(model: type[ModelT], payload: Any, operation: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Unexpected auth provider payload for {operation}: {payload!r}")
            raise NotekeeperError(ErrorKind.SERVER_ERROR) from e

    def _session_from(self, payload: Any, operation: str) -> ProviderSession:
        if isinstance(payload, dict) and "access_token" in payload:
            return self._parse(ProviderSession, payload, operation)
        # Unconfirmed sign-ups return the bare user
        user = (payload.get("user") or payload) if isinstance(payload, dict) else payload
        return ProviderSession(user=self._parse(ProviderUser, user, operation))

    async def sign_up(self, email: str, password: str, name: str) -> ProviderSession:
        """Register a user; the session is inactive when confirmation is required."""
        payload = await self._request(
            "sign_up",
            "POST",
            "/signup",
            json={
                "email": email,
                "password": password,
                "data": {"name": name, "display_name": name},
            },
        )
        return self._session_from(payload, "sign_up")

    async def sign_in_with_password(self, email: str, password: str) -> ProviderSession:
        """Exchange credentials for an active session."""
        payload = await self._request(
            "sign_in",
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._session_from(payload, "sign_in")

    async def refresh_session(self, refresh_token: str) -> ProviderSession:
        """Exchange a refresh token for a new session."""
        payload = await self._request(
            "refresh",
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return self._session_from(payload, "refresh")

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        await self._request("sign_out", "POST", "/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> ProviderUser:
        """Resolve an access token into the user it was issued to."""
        payload = await self._request("get_user", "GET", "/user", access_token=access_token)
        return self._parse(ProviderUser, payload, "get_user")

    async def health(self) -> dict:
        """Provider health payload, used by diagnostics."""
        return await self._request("health", "GET", "/health") or {}


def get_auth_provider() -> AuthProvider:
    """Get auth provider client instance."""
    return AuthProvider()
