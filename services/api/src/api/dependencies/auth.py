"""Caller identity for protected routes.

The identity provider edge authenticates the session and forwards the
stable external user id in a trusted header; this service only reads it.
"""

from dataclasses import dataclass

from fastapi import Request

from shared.config import AuthSettings, get_settings
from shared.logging import bind_context, get_logger

from ..errors import AuthenticationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity forwarded by the edge. ``external_id`` keys the account."""

    external_id: str
    email: str | None = None
    name: str | None = None


def _header(request: Request, name: str) -> str | None:
    value = (request.headers.get(name) or "").strip()
    return value or None


def identity_from_headers(request: Request, auth: AuthSettings) -> AuthenticatedUser | None:
    external_id = _header(request, auth.user_id_header)
    if external_id is None:
        return None
    return AuthenticatedUser(
        external_id=external_id,
        email=_header(request, auth.email_header),
        name=_header(request, auth.name_header),
    )


async def require_auth(request: Request) -> AuthenticatedUser:
    """Dependency resolving the caller, or failing the request with 401.

    Raises:
        AuthenticationError: If the edge forwarded no user id.
    """
    user = identity_from_headers(request, get_settings().auth)
    if user is None:
        logger.debug("Request without identity header", path=request.url.path)
        raise AuthenticationError("Unauthorized")

    bind_context(user_id=user.external_id)
    return user
