"""Authentication helpers for API routes."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Header

from ..core.telemetry import tag_current_user
from ..errors import Unauthorized
from ..identity import IdentityProvider
from ..schemas import Identity

logger = logging.getLogger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header value."""

    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_identity_dependency(provider: IdentityProvider) -> Callable[..., Awaitable[Identity]]:
    async def current_identity(authorization: str | None = Header(default=None)) -> Identity:
        token = bearer_token(authorization)
        if token is None:
            logger.info("Rejected request without a bearer token")
            raise Unauthorized()
        try:
            identity = await provider.get_user(token)
        except Unauthorized as exc:
            logger.info("Token verification failed: %s", exc.message)
            raise Unauthorized() from exc
        tag_current_user(identity.id, identity.email)
        return identity

    return current_identity


def get_token_dependency() -> Callable[..., Awaitable[str]]:
    async def current_token(authorization: str | None = Header(default=None)) -> str:
        token = bearer_token(authorization)
        if token is None:
            raise Unauthorized()
        return token

    return current_token


__all__ = ["bearer_token", "get_identity_dependency", "get_token_dependency"]
