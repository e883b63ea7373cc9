"""Identity providers: who is calling, and account lifecycle."""

from __future__ import annotations

from datetime import timedelta

from ..config import AppSettings
from ..database import Database
from .base import IdentityProvider
from .gotrue import GoTrueClient, GoTrueError
from .local import LocalIdentityProvider
from .supabase import SupabaseIdentityProvider


def build_identity_provider(settings: AppSettings, database: Database) -> IdentityProvider:
    """Construct the provider selected by ``settings.identity_backend``."""

    if settings.identity_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("supabase_url and supabase_service_role_key are required for the supabase backend")
        client = GoTrueClient(
            settings.supabase_url,
            settings.supabase_service_role_key,
            timeout=settings.identity_timeout_seconds,
        )
        return SupabaseIdentityProvider(client)
    return LocalIdentityProvider(database, token_lifetime=timedelta(hours=settings.token_lifetime_hours))


def build_auth_backend(settings: AppSettings) -> GoTrueClient | None:
    """Client for the browser-equivalent auth calls, or ``None`` when they go through the API.

    Only a hosted backend with an anon key is reachable directly; login, logout
    and password reset then skip the API proxy routes.
    """

    if settings.identity_backend != "supabase" or not (settings.supabase_url and settings.supabase_anon_key):
        return None
    return GoTrueClient(settings.supabase_url, settings.supabase_anon_key, timeout=settings.identity_timeout_seconds)


__all__ = [
    "GoTrueClient",
    "GoTrueError",
    "IdentityProvider",
    "LocalIdentityProvider",
    "SupabaseIdentityProvider",
    "build_auth_backend",
    "build_identity_provider",
]
