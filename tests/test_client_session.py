"""Client flows driven against the real application over ASGITransport."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path

from httpx import ASGITransport

from metricflow.api.main import create_app
from metricflow.client import (
    AuthFlow,
    DashboardSession,
    LoginForm,
    MetricFlowClient,
    MetricForm,
    SessionStore,
    SignupForm,
    ViewState,
)
from metricflow.client.forms import ForgotPasswordForm
from metricflow.schemas import Identity, Session


@asynccontextmanager
async def _client(settings, database, identity_provider):
    app = create_app(settings, db=database, identity_provider=identity_provider)
    async with app.router.lifespan_context(app):
        async with MetricFlowClient("http://test", transport=ASGITransport(app=app)) as api:
            yield api


def _signup_form(email: str = "dana@example.com") -> SignupForm:
    return SignupForm("Dana Lee", email, "Supersecret1", "Supersecret1", "Lee Bakery")


async def test_signup_then_dashboard_lifecycle(settings, database, identity_provider, tmp_path: Path):
    sessions = SessionStore(tmp_path / "session.json")
    async with _client(settings, database, identity_provider) as api:
        flow = AuthFlow(api, sessions)
        assert await flow.sign_up(_signup_form())
        assert (tmp_path / "session.json").exists()

        dashboard = DashboardSession(api, SessionStore(tmp_path / "session.json"))
        assert await dashboard.start() is ViewState.AUTHENTICATED
        assert dashboard.user.email == "dana@example.com"
        assert dashboard.metrics == []

        dashboard.open_create()
        assert await dashboard.save_metric(MetricForm("Croissants sold", 40, 50, "#", "Sales")) == {}
        assert not dashboard.modal_open
        assert dashboard.toast.message == "Metric saved successfully!"
        assert [m.metric_name for m in dashboard.visible_metrics] == ["Croissants sold"]

        form = dashboard.open_edit(dashboard.metrics[0])
        form.current_value = 55
        await dashboard.save_metric(form)
        assert dashboard.metrics[0].current_value == 55
        assert dashboard.summary.on_track == 1

        dashboard.request_delete(dashboard.metrics[0])
        assert await dashboard.confirm_delete()
        assert dashboard.metrics == []
        assert dashboard.toast.message == "Metric deleted successfully"


async def test_invalid_metric_form_never_reaches_the_api(settings, database, identity_provider):
    async with _client(settings, database, identity_provider) as api:
        sessions = SessionStore()
        await AuthFlow(api, sessions).sign_up(_signup_form("form@example.com"))
        dashboard = DashboardSession(api, sessions)
        await dashboard.start()

        dashboard.open_create()
        errors = await dashboard.save_metric(MetricForm("", 1, 0, "$"))
        assert set(errors) == {"metric_name", "target_value"}
        assert dashboard.modal_open
        assert dashboard.metrics == []


async def test_dashboard_without_session_redirects(settings, database, identity_provider):
    async with _client(settings, database, identity_provider) as api:
        dashboard = DashboardSession(api, SessionStore())
        assert await dashboard.start() is ViewState.REDIRECT_TO_LOGIN


async def test_locally_expired_session_redirects(settings, database, identity_provider):
    stale = Session(access_token="t", expires_at=int(time.time()) - 60, user=Identity(id="u"))
    sessions = SessionStore()
    sessions.save(stale)
    async with _client(settings, database, identity_provider) as api:
        dashboard = DashboardSession(api, sessions)
        assert await dashboard.start() is ViewState.REDIRECT_TO_LOGIN
        assert sessions.load() is None


async def test_revoked_token_expires_the_dashboard(settings, database, identity_provider):
    async with _client(settings, database, identity_provider) as api:
        sessions = SessionStore()
        flow = AuthFlow(api, sessions)
        await flow.sign_up(_signup_form("revoked@example.com"))
        await identity_provider.sign_out(sessions.load().access_token)

        dashboard = DashboardSession(api, sessions)
        assert await dashboard.start() is ViewState.REDIRECT_TO_LOGIN
        assert dashboard.toast.message == "Session expired. Please log in again."
        assert sessions.load() is None


async def test_auth_flow_messages(settings, database, identity_provider):
    async with _client(settings, database, identity_provider) as api:
        flow = AuthFlow(api, SessionStore())
        assert await flow.sign_up(_signup_form("erin@example.com"))

        assert not await flow.sign_up(_signup_form("erin@example.com"))
        assert "already registered" in flow.server_error

        assert not await flow.log_in(LoginForm("erin@example.com", "Wrongpass1"))
        assert flow.server_error == "Invalid email or password"

        assert not await flow.log_in(LoginForm("erin", ""))
        assert set(flow.errors) == {"email", "password"}
        assert flow.server_error == ""

        assert await flow.log_in(LoginForm("erin@example.com", "Supersecret1"))
        assert api.token

        assert await flow.request_password_reset(ForgotPasswordForm("erin@example.com"))
        assert flow.reset_email_sent

        await flow.log_out()
        assert api.token is None


async def test_submission_guard_blocks_reentry(settings, database, identity_provider):
    async with _client(settings, database, identity_provider) as api:
        flow = AuthFlow(api, SessionStore())
        flow.is_submitting = True
        assert not await flow.sign_up(_signup_form("guard@example.com"))

        # Nothing was sent, so the account does not exist yet.
        flow.is_submitting = False
        assert await flow.sign_up(_signup_form("guard@example.com"))
