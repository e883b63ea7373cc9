"""Python client for MetricFlow: API access, form validation and dashboard state."""

from .api import ApiError, MetricFlowClient
from .dashboard import filter_and_sort, progress_percent, summarize
from .forms import ForgotPasswordForm, LoginForm, MetricForm, SignupForm
from .session import AuthFlow, DashboardSession, SessionStore, Toast, ViewState

__all__ = [
    "ApiError",
    "AuthFlow",
    "DashboardSession",
    "ForgotPasswordForm",
    "LoginForm",
    "MetricFlowClient",
    "MetricForm",
    "SessionStore",
    "SignupForm",
    "Toast",
    "ViewState",
    "filter_and_sort",
    "progress_percent",
    "summarize",
]
