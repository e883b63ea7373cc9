"""Client-side flows for the auth pages and the dashboard.

These objects hold the UI state a page would render (field errors, the
server error line, toasts, modal state, submission guard) and perform the
single network call each user action maps to. They never retry; a failed
call leaves a message behind and re-enables submission.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from ..identity.gotrue import GoTrueError
from ..schemas import Identity, Metric, Session
from .api import GENERIC_ERROR_MESSAGE, ApiError, MetricFlowClient
from .dashboard import (
    ALL_CATEGORIES,
    SORT_KEYS,
    SORT_RECENT,
    DashboardSummary,
    category_options,
    coerce_metrics,
    filter_and_sort,
    summarize,
)
from .forms import ForgotPasswordForm, LoginForm, MetricForm, SignupForm

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."


class AuthBackend(Protocol):
    """Where login, logout and password reset go: the identity provider or the API proxy."""

    async def sign_in(self, email: str, password: str) -> Session: ...

    async def sign_out(self, access_token: str) -> None: ...

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None: ...


class SessionStore:
    """Keeps the current session in memory, mirrored to a JSON file when ``path`` is given."""

    def __init__(self, path: Path | None = None):
        self._path = path
        self._session: Session | None = None

    def load(self) -> Session | None:
        if self._session is None and self._path is not None and self._path.exists():
            try:
                self._session = Session.model_validate(json.loads(self._path.read_text()))
            except ValueError:
                logger.warning("Ignoring unreadable session file %s", self._path)
                return None
        return self._session

    def save(self, session: Session) -> None:
        self._session = session
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(session.model_dump_json())

    def clear(self) -> None:
        self._session = None
        if self._path is not None and self._path.exists():
            self._path.unlink()


def _is_unreachable(exc: Exception) -> bool:
    if isinstance(exc, ApiError):
        return exc.status_code == 0
    if isinstance(exc, GoTrueError):
        return exc.http_status == 0
    return False


class AuthFlow:
    """Signup, login, forgot-password and logout."""

    def __init__(self, api: MetricFlowClient, sessions: SessionStore, backend: AuthBackend | None = None):
        self._api = api
        self._sessions = sessions
        self._backend: AuthBackend = backend or api
        self.errors: dict[str, str] = {}
        self.server_error = ""
        self.is_submitting = False
        self.reset_email_sent = False

    def _begin(self, errors: dict[str, str]) -> bool:
        if self.is_submitting:
            return False
        self.server_error = ""
        self.errors = errors
        if errors:
            return False
        self.is_submitting = True
        return True

    def _remember(self, session: Session) -> None:
        self._sessions.save(session)
        self._api.token = session.access_token

    async def sign_up(self, form: SignupForm) -> bool:
        if not self._begin(form.validate()):
            return False
        try:
            result = await self._api.sign_up(
                form.email.strip(), form.password, form.full_name.strip(), form.business_name.strip()
            )
        except ApiError as exc:
            self.server_error = exc.message or "Failed to create account"
            return False
        finally:
            self.is_submitting = False
        if not result.session.access_token:
            self.server_error = "Account created but login failed. Please try logging in."
            return False
        self._remember(result.session)
        return True

    async def log_in(self, form: LoginForm) -> bool:
        if not self._begin(form.validate()):
            return False
        try:
            session = await self._backend.sign_in(form.email.strip(), form.password)
        except (ApiError, GoTrueError) as exc:
            self.server_error = GENERIC_ERROR_MESSAGE if _is_unreachable(exc) else "Invalid email or password"
            return False
        finally:
            self.is_submitting = False
        self._remember(session)
        return True

    async def request_password_reset(self, form: ForgotPasswordForm, redirect_to: str | None = None) -> bool:
        self.reset_email_sent = False
        if not self._begin(form.validate()):
            return False
        try:
            await self._backend.send_password_reset(form.email.strip(), redirect_to)
        except (ApiError, GoTrueError):
            self.server_error = "Unable to send reset email. Please try again."
            return False
        finally:
            self.is_submitting = False
        self.reset_email_sent = True
        return True

    async def log_out(self) -> None:
        session = self._sessions.load()
        self._sessions.clear()
        self._api.token = None
        if session is None:
            return
        try:
            await self._backend.sign_out(session.access_token)
        except (ApiError, GoTrueError) as exc:
            # The local session is already gone; the token will lapse on its own.
            logger.warning("Remote sign-out failed: %s", exc.message)


class ViewState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    REDIRECT_TO_LOGIN = "redirect_to_login"


@dataclass(frozen=True)
class Toast:
    message: str
    kind: str = "info"


class DashboardSession:
    """State behind the dashboard page.

    Mutations never patch ``metrics`` in place: after every successful write
    the full list is fetched again from the API.
    """

    def __init__(self, api: MetricFlowClient, sessions: SessionStore):
        self._api = api
        self._sessions = sessions
        self.state = ViewState.LOADING
        self.user: Identity | None = None
        self.metrics: list[Metric] = []
        self.category = ALL_CATEGORIES
        self.sort_by = SORT_RECENT
        self.toast: Toast | None = None
        self.is_loading = False
        self.is_submitting = False
        self.modal_open = False
        self.editing: Metric | None = None
        self.pending_delete: Metric | None = None

    async def start(self) -> ViewState:
        session = self._sessions.load()
        if session is None or (session.expires_at is not None and session.expires_at <= time.time()):
            self._redirect_to_login()
            return self.state
        self._api.token = session.access_token
        self.user = session.user
        self.state = ViewState.AUTHENTICATED
        await self.refresh()
        return self.state

    def _redirect_to_login(self, message: str | None = None) -> None:
        self._sessions.clear()
        self._api.token = None
        self.state = ViewState.REDIRECT_TO_LOGIN
        if message:
            self.toast = Toast(message, "error")

    async def refresh(self) -> None:
        self.is_loading = True
        try:
            records = await self._api.list_metrics()
        except ApiError as exc:
            if exc.is_unauthorized:
                self._redirect_to_login(SESSION_EXPIRED_MESSAGE)
                return
            self.metrics = []
            self.toast = Toast("Failed to load metrics", "error")
            return
        finally:
            self.is_loading = False
        self.metrics = coerce_metrics(records)

    @property
    def visible_metrics(self) -> list[Metric]:
        return filter_and_sort(self.metrics, self.category, self.sort_by)

    @property
    def summary(self) -> DashboardSummary:
        return summarize(self.metrics)

    def set_category(self, category: str) -> None:
        if category not in category_options():
            raise ValueError(f"Unknown category filter: {category}")
        self.category = category

    def set_sort(self, sort_by: str) -> None:
        if sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_by}")
        self.sort_by = sort_by

    def open_create(self) -> MetricForm:
        self.editing = None
        self.modal_open = True
        return MetricForm()

    def open_edit(self, metric: Metric) -> MetricForm:
        self.editing = metric
        self.modal_open = True
        return MetricForm(
            metric_name=metric.metric_name,
            current_value=metric.current_value,
            target_value=metric.target_value,
            unit=metric.unit,
            category=metric.category,
        )

    def close_modal(self) -> None:
        self.modal_open = False
        self.editing = None

    async def save_metric(self, form: MetricForm) -> dict[str, str]:
        """Validate and submit the modal form; returns field errors, if any."""

        if self.is_submitting:
            return {}
        errors = form.validate()
        if errors:
            return errors

        self.is_submitting = True
        try:
            if self.editing is None:
                await self._api.create_metric(form.to_payload())
            else:
                await self._api.update_metric(self.editing.id, form.to_payload())
        except ApiError as exc:
            if exc.is_unauthorized:
                self._redirect_to_login(SESSION_EXPIRED_MESSAGE)
            else:
                self.toast = Toast(exc.message or "Failed to save metric", "error")
            return {}
        finally:
            self.is_submitting = False

        self.close_modal()
        await self.refresh()
        if self.state is ViewState.AUTHENTICATED:
            self.toast = Toast("Metric saved successfully!", "success")
        return {}

    def request_delete(self, metric: Metric) -> None:
        self.pending_delete = metric

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        metric = self.pending_delete
        if metric is None or self.is_submitting:
            return False
        self.is_submitting = True
        try:
            await self._api.delete_metric(metric.id)
        except ApiError as exc:
            if exc.is_unauthorized:
                self._redirect_to_login(SESSION_EXPIRED_MESSAGE)
            else:
                self.toast = Toast("Failed to delete metric", "error")
            return False
        finally:
            self.is_submitting = False
            self.pending_delete = None

        await self.refresh()
        if self.state is ViewState.AUTHENTICATED:
            self.toast = Toast("Metric deleted successfully", "success")
        return True

    def dismiss_toast(self) -> None:
        self.toast = None


__all__ = [
    "AuthBackend",
    "AuthFlow",
    "DashboardSession",
    "SESSION_EXPIRED_MESSAGE",
    "SessionStore",
    "Toast",
    "ViewState",
]
