"""Identity provider contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..schemas import Identity, Session


class IdentityProvider(ABC):
    """Issues and validates bearer tokens and owns account credentials.

    Implementations raise ``metricflow.errors`` exceptions: ``DuplicateAccount``
    and ``ProviderError`` from :meth:`create_user`, ``InvalidCredentials`` from
    :meth:`sign_in`, ``Unauthorized`` from :meth:`get_user`.
    """

    @abstractmethod
    async def create_user(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        """Create a pre-confirmed account."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a session."""

    @abstractmethod
    async def get_user(self, access_token: str) -> Identity:
        """Resolve a bearer token to the identity it was issued to."""

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke ``access_token``."""

    @abstractmethod
    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        """Start the password reset flow. Unknown emails are not reported."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Remove an account; its tokens stop resolving."""

    async def aclose(self) -> None:
        """Release network or database resources held by the provider."""
