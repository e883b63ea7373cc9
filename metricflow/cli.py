"""Command line entry point: run the API or drive it as a client."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path
from typing import Sequence

from .client import ApiError, AuthFlow, DashboardSession, MetricFlowClient, SessionStore, ViewState
from .client.dashboard import SORT_KEYS, category_options, progress_band, progress_percent, time_ago
from .client.forms import ForgotPasswordForm, LoginForm, MetricForm, SignupForm
from .config import get_settings
from .identity import GoTrueClient, build_auth_backend
from .schemas import Category, Metric

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_SESSION_FILE = Path.home() / ".metricflow" / "session.json"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="metricflow", description="Track business KPIs with MetricFlow")
    parser.add_argument("--api-url", default=os.getenv("METRICFLOW_API_URL", DEFAULT_API_URL))
    parser.add_argument("--session-file", type=Path, default=DEFAULT_SESSION_FILE)
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=int(os.getenv("METRICFLOW_PORT", "8000")))
    serve.add_argument("--reload", action="store_true")

    signup = commands.add_parser("signup", help="Create an account and log in")
    signup.add_argument("--email", required=True)
    signup.add_argument("--name", required=True, help="Full name")
    signup.add_argument("--business", default="", help="Business name")

    login = commands.add_parser("login", help="Log in")
    login.add_argument("--email", required=True)

    commands.add_parser("logout", help="Log out and forget the stored session")

    reset = commands.add_parser("reset-password", help="Send a password reset email")
    reset.add_argument("--email", required=True)

    list_cmd = commands.add_parser("list", help="Show your metrics")
    list_cmd.add_argument("--category", default="All", choices=category_options())
    list_cmd.add_argument("--sort", default="recent", choices=SORT_KEYS)

    for name in ("add", "update"):
        cmd = commands.add_parser(name, help=f"{name.capitalize()} a metric")
        if name == "update":
            cmd.add_argument("metric_id")
        cmd.add_argument("--name", required=True)
        cmd.add_argument("--current", type=float, required=True)
        cmd.add_argument("--target", type=float, required=True)
        cmd.add_argument("--unit", required=True)
        cmd.add_argument("--category", default=Category.SALES.value, choices=[c.value for c in Category])

    delete = commands.add_parser("delete", help="Delete a metric")
    delete.add_argument("metric_id")
    return parser


def _print_errors(errors: dict[str, str], server_error: str = "") -> int:
    for field_name, message in errors.items():
        print(f"{field_name}: {message}", file=sys.stderr)
    if server_error:
        print(server_error, file=sys.stderr)
    return 1


def _format_metric(metric: Metric) -> str:
    percent = progress_percent(metric.current_value, metric.target_value)
    return (
        f"{metric.id}  {metric.metric_name:<30} {metric.category:<10} "
        f"{metric.unit}{metric.current_value:,.2f} / {metric.unit}{metric.target_value:,.2f} "
        f"{percent:5.1f}% {progress_band(percent)}  updated {time_ago(metric.last_updated).lower()}"
    )


async def _run_auth(
    args: argparse.Namespace,
    api: MetricFlowClient,
    sessions: SessionStore,
    backend: GoTrueClient | None = None,
) -> int:
    flow = AuthFlow(api, sessions, backend)
    if args.command == "signup":
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        form = SignupForm(args.name, args.email, password, confirm, args.business)
        if not await flow.sign_up(form):
            return _print_errors(flow.errors, flow.server_error)
        print(f"Welcome, {args.name}!")
        return 0
    if args.command == "login":
        form = LoginForm(args.email, getpass.getpass("Password: "))
        if not await flow.log_in(form):
            return _print_errors(flow.errors, flow.server_error)
        print("Logged in.")
        return 0
    if args.command == "reset-password":
        if not await flow.request_password_reset(ForgotPasswordForm(args.email)):
            return _print_errors(flow.errors, flow.server_error)
        print("Check your email for password reset instructions.")
        return 0
    await flow.log_out()
    print("Logged out.")
    return 0


async def _run_dashboard(args: argparse.Namespace, api: MetricFlowClient, sessions: SessionStore) -> int:
    dashboard = DashboardSession(api, sessions)
    if await dashboard.start() is ViewState.REDIRECT_TO_LOGIN:
        print("Please log in first: metricflow login --email you@example.com", file=sys.stderr)
        return 1

    if args.command == "list":
        dashboard.set_category(args.category)
        dashboard.set_sort(args.sort)
        summary = dashboard.summary
        print(f"{summary.total} metrics, {summary.on_track} on track, {summary.needs_attention} need attention")
        for metric in dashboard.visible_metrics:
            print(_format_metric(metric))
    elif args.command in ("add", "update"):
        if args.command == "update":
            target = next((m for m in dashboard.metrics if m.id == args.metric_id), None)
            if target is None:
                print("Metric not found", file=sys.stderr)
                return 1
            dashboard.open_edit(target)
        else:
            dashboard.open_create()
        form = MetricForm(args.name, args.current, args.target, args.unit, args.category)
        errors = await dashboard.save_metric(form)
        if errors:
            return _print_errors(errors)
    elif args.command == "delete":
        target = next((m for m in dashboard.metrics if m.id == args.metric_id), None)
        if target is None:
            print("Metric not found", file=sys.stderr)
            return 1
        dashboard.request_delete(target)
        await dashboard.confirm_delete()

    if dashboard.toast is not None:
        stream = sys.stderr if dashboard.toast.kind == "error" else sys.stdout
        print(dashboard.toast.message, file=stream)
        return 1 if dashboard.toast.kind == "error" else 0
    return 0


async def _run_client(args: argparse.Namespace) -> int:
    sessions = SessionStore(args.session_file)
    backend = build_auth_backend(get_settings())
    async with MetricFlowClient(args.api_url) as api:
        try:
            if args.command in ("signup", "login", "logout", "reset-password"):
                return await _run_auth(args, api, sessions, backend)
            return await _run_dashboard(args, api, sessions)
        except ApiError as exc:
            print(exc.message, file=sys.stderr)
            return 1
        finally:
            if backend is not None:
                await backend.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "serve":
        import uvicorn

        uvicorn.run("metricflow.api.main:app", host=args.host, port=args.port, reload=args.reload, log_level="info")
        return 0
    return asyncio.run(_run_client(args))


if __name__ == "__main__":
    raise SystemExit(main())
