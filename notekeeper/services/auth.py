"""Authentication service: bearer token resolution."""

import logging
from uuid import UUID

from jose import JWTError, jwt

from notekeeper.config import get_settings
from notekeeper.errors import ErrorKind, NotekeeperError
from notekeeper.services.provider import AuthProvider, ProviderUser

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


def decode_access_token(token: str, secret: str | None = None) -> dict | None:
    """Decode and validate a provider-issued JWT."""
    secret = secret or get_settings().supabase_jwt_secret
    if not secret:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None


def _user_from_claims(claims: dict) -> ProviderUser | None:
    user_id = claims.get("sub")
    if not user_id:
        return None
    return ProviderUser(
        id=user_id,
        email=claims.get("email"),
        user_metadata=claims.get("user_metadata") or {},
    )


async def resolve_user(provider: AuthProvider, token: str) -> ProviderUser:
    """Resolve a bearer token into its user, or raise UNAUTHENTICATED.

    Tokens are verified locally when the provider's JWT secret is configured,
    otherwise the provider is asked who the token belongs to.
    """
    if not token:
        raise NotekeeperError(ErrorKind.UNAUTHENTICATED, "No authorization header")

    if provider.settings.supabase_jwt_secret:
        claims = decode_access_token(token, provider.settings.supabase_jwt_secret)
        user = _user_from_claims(claims) if claims else None
    else:
        try:
            user = await provider.get_user(token)
        except NotekeeperError as e:
            if e.kind in (ErrorKind.NETWORK_ERROR, ErrorKind.SERVER_ERROR, ErrorKind.RATE_LIMITED):
                raise
            user = None

    if user is None or not is_uuid(user.id):
        raise NotekeeperError(ErrorKind.UNAUTHENTICATED)
    return user


def is_uuid(value: str) -> bool:
    """Check whether a string is a well-formed UUID."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True
