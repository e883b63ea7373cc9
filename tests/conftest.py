import asyncio
import inspect
import pathlib
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from metricflow.api.main import create_app  # noqa: E402
from metricflow.config import AppSettings  # noqa: E402
from metricflow.database import Database  # noqa: E402
from metricflow.identity import IdentityProvider, LocalIdentityProvider  # noqa: E402
from metricflow.identity.security import build_password_context  # noqa: E402
from metricflow.store import KeyValueStore  # noqa: E402

# bcrypt's minimum cost keeps the suite fast.
FAST_PASSWORDS = build_password_context(rounds=4)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture
def database(tmp_path: pathlib.Path) -> Database:
    return Database(url=f"sqlite+aiosqlite:///{tmp_path / 'metricflow.db'}")


@pytest.fixture
def identity_provider(database: Database) -> LocalIdentityProvider:
    return LocalIdentityProvider(database, password_context=FAST_PASSWORDS)


@pytest.fixture
def settings(database: Database) -> AppSettings:
    return AppSettings(database_url=database.url, telemetry_enabled=False)


@pytest.fixture
def api_client(
    settings: AppSettings,
    database: Database,
    identity_provider: IdentityProvider,
) -> Callable[..., AsyncIterator[AsyncClient]]:
    """Return a context manager running the app (lifespan included) behind an httpx client."""

    @asynccontextmanager
    async def _manager(
        *,
        provider: IdentityProvider | None = None,
        store: KeyValueStore | None = None,
        app_settings: AppSettings | None = None,
    ) -> AsyncIterator[AsyncClient]:
        app = create_app(
            app_settings or settings,
            db=database,
            store=store,
            identity_provider=provider or identity_provider,
        )
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _manager


async def signup(client: AsyncClient, email: str, password: str = "Supersecret1", name: str = "Alex Doe") -> dict:
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password, "fullName": name, "businessName": "Acme"},
    )
    assert response.status_code == 200, response.text
    return response.json()


def bearer(payload: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {payload['session']['access_token']}"}
