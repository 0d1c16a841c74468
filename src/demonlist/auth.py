"""Bearer token verification for demonlist service."""

from collections.abc import Collection

import jwt
from aws_lambda_powertools.utilities.data_classes.common import BaseProxyEvent
from pydantic import ValidationError

from .config import Settings
from .errors import AuthenticationError, PermissionDeniedError
from .models import Role, TokenPayload

ADMIN_ONLY = frozenset({Role.ADMIN})
STAFF = frozenset({Role.ADMIN, Role.MODERATOR})


def decode_token(token: str, settings: Settings) -> TokenPayload:
    """Verify a token's signature and expiry and return its payload."""
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is not configured")
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return TokenPayload.model_validate(claims)
    except (jwt.PyJWTError, ValidationError) as e:
        raise AuthenticationError("Unauthorized: Invalid token.") from e


def authenticate(
    event: BaseProxyEvent,
    settings: Settings,
    roles: Collection[Role] | None = None,
) -> TokenPayload:
    """Return the caller behind the ``Authorization`` header.

    Args:
        event: Current API Gateway event
        settings: Settings holding the signing secret
        roles: Roles allowed through; any authenticated caller when None

    Raises:
        AuthenticationError: If the header is missing or the token is bad
        PermissionDeniedError: If the caller's role is not in ``roles``
    """
    header = event.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Unauthorized")

    caller = decode_token(token.strip(), settings)
    if roles is not None and caller.role not in roles:
        raise PermissionDeniedError("Forbidden: Insufficient permissions.")
    return caller
