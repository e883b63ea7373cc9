from datetime import timedelta

import pytest
from sqlalchemy import func, select

from metricflow.errors import DuplicateAccount, InvalidCredentials, Unauthorized
from metricflow.identity import LocalIdentityProvider
from metricflow.identity.models import AuthToken

from conftest import FAST_PASSWORDS


async def test_accounts_are_confirmed_and_emails_normalised(database, identity_provider):
    await database.create_all()
    try:
        identity = await identity_provider.create_user("  Casey@Example.COM ", "Supersecret1", {"full_name": "Casey"})
        assert identity.email == "casey@example.com"
        assert identity.full_name == "Casey"

        with pytest.raises(DuplicateAccount):
            await identity_provider.create_user("casey@example.com", "Otherpass1", {})

        session = await identity_provider.sign_in("CASEY@example.com", "Supersecret1")
        assert session.user.id == identity.id
        assert (await identity_provider.get_user(session.access_token)).id == identity.id
    finally:
        await database.dispose()


async def test_wrong_password_and_unknown_email(database, identity_provider):
    await database.create_all()
    try:
        await identity_provider.create_user("drew@example.com", "Supersecret1", {})
        with pytest.raises(InvalidCredentials):
            await identity_provider.sign_in("drew@example.com", "Supersecret2")
        with pytest.raises(InvalidCredentials):
            await identity_provider.sign_in("nobody@example.com", "Supersecret1")
    finally:
        await database.dispose()


async def test_expired_and_revoked_tokens_are_unauthorized(database):
    await database.create_all()
    try:
        expired_provider = LocalIdentityProvider(database, token_lifetime=timedelta(0), password_context=FAST_PASSWORDS)
        await expired_provider.create_user("eli@example.com", "Supersecret1", {})
        expired = await expired_provider.sign_in("eli@example.com", "Supersecret1")
        with pytest.raises(Unauthorized):
            await expired_provider.get_user(expired.access_token)

        provider = LocalIdentityProvider(database, password_context=FAST_PASSWORDS)
        session = await provider.sign_in("eli@example.com", "Supersecret1")
        await provider.sign_out(session.access_token)
        with pytest.raises(Unauthorized):
            await provider.get_user(session.access_token)

        with pytest.raises(Unauthorized):
            await provider.get_user("never-issued")
    finally:
        await database.dispose()


async def test_deleting_an_account_removes_its_tokens(database, identity_provider):
    await database.create_all()
    try:
        identity = await identity_provider.create_user("fay@example.com", "Supersecret1", {})
        await identity_provider.sign_in("fay@example.com", "Supersecret1")
        await identity_provider.delete_user(identity.id)

        async with database.session() as session:
            remaining = await session.scalar(select(func.count()).select_from(AuthToken))
        assert remaining == 0
    finally:
        await database.dispose()
