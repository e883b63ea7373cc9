"""Self-hosted identity provider backed by the application database."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from passlib.context import CryptContext
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from ..database import Database
from ..errors import DuplicateAccount, InvalidCredentials, ProviderError, Unauthorized
from ..schemas import Identity, Session
from .base import IdentityProvider
from .models import AuthToken, User, utcnow
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(days=7)


class LocalIdentityProvider(IdentityProvider):
    """Accounts and opaque bearer tokens stored in the ``users`` and ``auth_tokens`` tables."""

    def __init__(
        self,
        database: Database,
        token_lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
        password_context: CryptContext | None = None,
    ):
        self._database = database
        self._token_lifetime = token_lifetime
        self._password_context = password_context

    async def create_user(self, email: str, password: str, metadata: dict[str, Any]) -> Identity:
        normalized_email = _normalize_email(email)
        if not normalized_email or not password:
            raise ProviderError("Email and password are required")

        async with self._database.session() as session:
            existing = await session.execute(select(User.id).where(User.email == normalized_email))
            if existing.scalar_one_or_none() is not None:
                raise DuplicateAccount()

            now = utcnow()
            user = User(
                email=normalized_email,
                password_hash=hash_password(password, self._password_context),
                user_metadata=dict(metadata),
                email_confirmed_at=now,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as exc:
                # Lost a race against a concurrent signup for the same email.
                await session.rollback()
                raise DuplicateAccount() from exc
            await session.refresh(user)
            logger.info("Created local account %s", user.id)
            return _to_identity(user)

    async def sign_in(self, email: str, password: str) -> Session:
        normalized_email = _normalize_email(email)
        async with self._database.session() as session:
            query = await session.execute(select(User).where(User.email == normalized_email))
            user = query.scalar_one_or_none()
            if user is None or not verify_password(password, user.password_hash, self._password_context):
                raise InvalidCredentials()

            token = AuthToken.for_user(user.id, self._token_lifetime)
            session.add(token)
            await session.commit()
            return Session(
                access_token=token.token,
                expires_in=int(self._token_lifetime.total_seconds()),
                expires_at=int(token.expires_at.timestamp()),
                user=_to_identity(user),
            )

    async def get_user(self, access_token: str) -> Identity:
        async with self._database.session() as session:
            result = await session.execute(select(AuthToken).where(AuthToken.token == access_token))
            auth_token = result.scalar_one_or_none()
            if auth_token is None or not auth_token.is_active:
                raise Unauthorized("Invalid token")
            if _as_utc(auth_token.expires_at) <= utcnow():
                raise Unauthorized("Token expired")
            user = await session.get(User, auth_token.user_id)
            if user is None:
                raise Unauthorized("User not found")
            return _to_identity(user)

    async def sign_out(self, access_token: str) -> None:
        async with self._database.session() as session:
            await session.execute(
                update(AuthToken).where(AuthToken.token == access_token).values(is_active=False)
            )
            await session.commit()

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        # No mail transport is wired to the local provider; the request is only recorded.
        normalized_email = _normalize_email(email)
        async with self._database.session() as session:
            result = await session.execute(select(User.id).where(User.email == normalized_email))
            user_id = result.scalar_one_or_none()
        if user_id is None:
            logger.info("Password reset requested for unknown account")
            return
        logger.info("Password reset requested for account %s (redirect=%s)", user_id, redirect_to)

    async def delete_user(self, user_id: str) -> None:
        try:
            key = UUID(str(user_id))
        except ValueError:
            return
        async with self._database.session() as session:
            await session.execute(delete(User).where(User.id == key))
            await session.commit()
        logger.info("Deleted local account %s", user_id)


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored value is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_identity(user: User) -> Identity:
    return Identity(
        id=str(user.id),
        email=user.email,
        user_metadata=dict(user.user_metadata or {}),
        created_at=user.created_at,
    )


__all__ = ["DEFAULT_TOKEN_LIFETIME", "LocalIdentityProvider"]
