"""Process-local session store with an observable change stream."""

import itertools
import logging
import re
from collections.abc import Awaitable, Callable
from enum import StrEnum

import httpx
from pydantic import BaseModel

from notekeeper.config import get_settings
from notekeeper.errors import DEFAULT_MESSAGES, ErrorKind, NotekeeperError
from notekeeper.schemas.auth import EMAIL_PATTERN, PASSWORD_MIN_LENGTH
from notekeeper.services.provider import AuthProvider, ProviderSession, ProviderUser

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(EMAIL_PATTERN)


class SessionEvent(StrEnum):
    """Session transitions published to subscribers."""

    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


class SignUpAction(StrEnum):
    """What to do when the direct sign-up call fails."""

    FALLBACK = "fallback"
    FAIL = "fail"


# Direct sign-up is unreliable under some hosting setups; only throttling and
# provider faults are retried through the server-side registration route.
SIGN_UP_FAILURE_ACTIONS: dict[ErrorKind, SignUpAction] = {
    ErrorKind.RATE_LIMITED: SignUpAction.FALLBACK,
    ErrorKind.SERVER_ERROR: SignUpAction.FALLBACK,
}

SIGN_UP_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: "Too many signup attempts. Please wait a few minutes and try again.",
    ErrorKind.SERVER_ERROR: "Server error. Please try again later.",
}

SIGN_IN_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: "Too many login attempts. Please wait a few minutes and try again.",
}


class AuthResult(BaseModel):
    """Uniform outcome of a session store operation."""

    success: bool
    code: ErrorKind | None = None
    message: str | None = None
    user: ProviderUser | None = None
    session: ProviderSession | None = None
    needs_confirmation: bool = False
    needs_login: bool = False

    @classmethod
    def failure(cls, kind: ErrorKind, message: str | None = None) -> "AuthResult":
        return cls(success=False, code=kind, message=message or DEFAULT_MESSAGES[kind])


Listener = Callable[[SessionEvent, ProviderSession | None], None]
FallbackRegistrar = Callable[[str, str, str], Awaitable[AuthResult]]


async def register_via_api(
    name: str,
    email: str,
    password: str,
    base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AuthResult:
    """Register through this service's own /auth/register route."""
    settings = get_settings()
    base_url = (base_url or settings.api_base_url).rstrip("/")
    try:
        async with httpx.AsyncClient(
            timeout=settings.provider_timeout, transport=transport
        ) as client:
            response = await client.post(
                f"{base_url}/auth/register",
                json={"name": name, "email": email, "password": password},
            )
    except httpx.TransportError as e:
        logger.error(f"Fallback registration unreachable: {e}")
        return AuthResult.failure(ErrorKind.NETWORK_ERROR)

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.is_error:
        try:
            kind = ErrorKind(body.get("code"))
        except ValueError:
            kind = ErrorKind.SERVER_ERROR
        return AuthResult.failure(kind, body.get("error"))

    user = body.get("user")
    return AuthResult(
        success=True,
        message=body.get("message"),
        user=ProviderUser.model_validate(user) if user else None,
        needs_confirmation=bool(body.get("needsConfirmation")),
    )


def validate_registration(name: str, email: str, password: str) -> str | None:
    """Return the first problem with a registration form, if any."""
    if not name or not email or not password:
        return "Name, email, and password are required"
    if not EMAIL_RE.match(email):
        return "Please enter a valid email address"
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
    return None


class SessionStore:
    """Owns the current authenticated identity of one client process.

    Wraps the provider's sign-up/sign-in/sign-out calls into ``AuthResult``
    values and publishes every session transition to subscribers, in emission
    order, at most once per listener.
    """

    def __init__(
        self,
        provider: AuthProvider | None = None,
        fallback_registrar: FallbackRegistrar | None = None,
    ) -> None:
        self.provider = provider or AuthProvider()
        self.fallback_registrar = fallback_registrar or register_via_api
        self._session: ProviderSession | None = None
        self._listeners: dict[int, Listener] = {}
        self._ids = itertools.count()

    async def __aenter__(self) -> "SessionStore":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def session(self) -> ProviderSession | None:
        return self._session

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and self._session.is_active

    async def initialize(self, session: ProviderSession | None = None) -> None:
        """Start the store, optionally restoring a saved session."""
        if session is not None and session.access_token:
            try:
                user = await self.provider.get_user(session.access_token)
                self._session = session.model_copy(update={"user": user})
            except NotekeeperError as e:
                logger.info(f"Saved session could not be restored: {e.kind}")
                self._session = None
        self._emit(SessionEvent.INITIAL_SESSION)

    async def close(self) -> None:
        """Drop the local session and every listener."""
        self._session = None
        self._listeners.clear()

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a listener; returns a handle that unsubscribes it."""
        listener_id = next(self._ids)
        self._listeners[listener_id] = callback

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def _emit(self, event: SessionEvent) -> None:
        # Snapshot so listeners added during delivery miss this event
        for listener in list(self._listeners.values()):
            try:
                listener(event, self._session)
            except Exception:
                logger.exception(f"Session listener failed on {event}")

    def _set_session(self, session: ProviderSession | None, event: SessionEvent) -> None:
        self._session = session
        self._emit(event)

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account, falling back to the registration route when needed."""
        problem = validate_registration(name, email, password)
        if problem:
            return AuthResult.failure(ErrorKind.VALIDATION, problem)

        try:
            created = await self.provider.sign_up(email, password, name)
        except NotekeeperError as e:
            logger.warning(f"Direct sign-up failed: {e.kind}")
            action = SIGN_UP_FAILURE_ACTIONS.get(e.kind, SignUpAction.FAIL)
            if action is SignUpAction.FALLBACK:
                return await self._sign_up_fallback(name, email, password)
            return AuthResult.failure(e.kind, SIGN_UP_MESSAGES.get(e.kind, e.message))

        if not created.is_active:
            return AuthResult(
                success=True,
                message="Please check your email to confirm your account before logging in.",
                user=created.user,
                needs_confirmation=True,
            )

        self._set_session(created, SessionEvent.SIGNED_IN)
        return AuthResult(
            success=True,
            message="Account created successfully!",
            user=created.user,
            session=created,
        )

    async def _sign_up_fallback(self, name: str, email: str, password: str) -> AuthResult:
        logger.info("Trying registration through the server-side route")
        registered = await self.fallback_registrar(name, email, password)
        if not registered.success:
            return registered

        signed_in = await self.sign_in(email, password)
        if signed_in.success:
            signed_in.message = "Account created and logged in successfully!"
            return signed_in
        return AuthResult(
            success=True,
            message="Account created successfully! Please log in to continue.",
            user=registered.user,
            needs_login=True,
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password."""
        if not email or not password:
            return AuthResult.failure(ErrorKind.VALIDATION, "Email and password are required")

        try:
            session = await self.provider.sign_in_with_password(email, password)
        except NotekeeperError as e:
            kind = e.kind
            if kind not in (
                ErrorKind.RATE_LIMITED,
                ErrorKind.INVALID_CREDENTIALS,
                ErrorKind.NETWORK_ERROR,
            ):
                kind = ErrorKind.SERVER_ERROR
            return AuthResult.failure(kind, SIGN_IN_MESSAGES.get(kind))

        self._set_session(session, SessionEvent.SIGNED_IN)
        return AuthResult(success=True, message="Login successful", user=session.user, session=session)

    async def refresh(self) -> AuthResult:
        """Renew the access token with the stored refresh token."""
        if self._session is None or not self._session.refresh_token:
            return AuthResult.failure(ErrorKind.UNAUTHENTICATED, "No session to refresh")
        try:
            session = await self.provider.refresh_session(self._session.refresh_token)
        except NotekeeperError as e:
            if e.kind is ErrorKind.UNAUTHENTICATED:
                self._set_session(None, SessionEvent.SIGNED_OUT)
            return AuthResult.failure(e.kind)

        self._set_session(session, SessionEvent.TOKEN_REFRESHED)
        return AuthResult(success=True, user=session.user, session=session)

    async def sign_out(self) -> None:
        """Forget the session locally; provider failures are only logged."""
        token = self.access_token
        had_session = self._session is not None
        self._session = None
        if token:
            try:
                await self.provider.sign_out(token)
            except NotekeeperError as e:
                logger.error(f"Error signing out: {e.kind}")
        if had_session:
            self._emit(SessionEvent.SIGNED_OUT)

    async def get_current_user(self) -> ProviderUser | None:
        """The signed-in user, or None; a missing session is not an error."""
        if not self.is_authenticated:
            return None
        return self._session.user
