"""Identity provider delegating to a hosted Supabase Auth project."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import DuplicateAccount, InvalidCredentials, ProviderError, Unauthorized
from ..schemas import Identity, Session
from .base import IdentityProvider
from .gotrue import GoTrueClient, GoTrueError

logger = logging.getLogger(__name__)

_DUPLICATE_ERROR_CODES = {"email_exists", "user_already_exists"}


def is_duplicate_account_error(error: GoTrueError) -> bool:
    if error.error_code in _DUPLICATE_ERROR_CODES:
        return True
    message = error.message.lower()
    return "already registered" in message or "already been registered" in message


class SupabaseIdentityProvider(IdentityProvider):
    """Uses the service-role key, so it may create confirmed users and delete accounts."""

    def __init__(self, client: GoTrueClient):
        self._client = client

    async def create_user(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        try:
            return await self._client.admin_create_user(email, password, metadata)
        except GoTrueError as exc:
            if is_duplicate_account_error(exc):
                raise DuplicateAccount() from exc
            raise ProviderError(exc.message) from exc

    async def sign_in(self, email: str, password: str) -> Session:
        try:
            return await self._client.sign_in(email, password)
        except GoTrueError as exc:
            if exc.http_status in (400, 401):
                raise InvalidCredentials(exc.message) from exc
            raise ProviderError(exc.message) from exc

    async def get_user(self, access_token: str) -> Identity:
        try:
            return await self._client.get_user(access_token)
        except GoTrueError as exc:
            # An unreachable server counts as an unverified token.
            raise Unauthorized(f"Token verification failed: {exc.message}") from exc

    async def sign_out(self, access_token: str) -> None:
        try:
            await self._client.sign_out(access_token)
        except GoTrueError as exc:
            # An already-invalid token is as signed out as it gets.
            if exc.http_status in (401, 403, 404):
                return
            raise ProviderError(exc.message) from exc

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        try:
            await self._client.send_password_reset(email, redirect_to)
        except GoTrueError as exc:
            raise ProviderError("Unable to send reset email. Please try again.") from exc

    async def delete_user(self, user_id: str) -> None:
        try:
            await self._client.admin_delete_user(user_id)
        except GoTrueError as exc:
            if exc.http_status == 404:
                return
            raise ProviderError(exc.message) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["SupabaseIdentityProvider", "is_duplicate_account_error"]
