import pytest

from metricflow.config import DEFAULT_CORS_ORIGINS, AppSettings
from metricflow.database import Database
from metricflow.errors import UnexpectedError, ValidationError, failure_boundary
from metricflow.identity import (
    GoTrueClient,
    LocalIdentityProvider,
    SupabaseIdentityProvider,
    build_auth_backend,
    build_identity_provider,
)


def test_cors_origins_parse_comma_separated_values():
    assert AppSettings().cors_origins == DEFAULT_CORS_ORIGINS
    settings = AppSettings(backend_cors_origins="https://app.example.com, http://localhost:5173,")
    assert settings.cors_origins == ["https://app.example.com", "http://localhost:5173"]


def test_secrets_are_masked_for_logging():
    settings = AppSettings(supabase_service_role_key="very-secret", supabase_anon_key="anon")
    logged = settings.dict_for_logging()
    assert logged["supabase_service_role_key"] == "***"
    assert logged["supabase_anon_key"] == "***"
    assert "very-secret" not in str(logged)


def test_identity_backend_selection(tmp_path):
    database = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'select.db'}")
    assert database.is_sqlite
    assert not Database(url="postgresql+asyncpg://u:p@db/metricflow").is_sqlite
    assert isinstance(build_identity_provider(AppSettings(), database), LocalIdentityProvider)

    hosted = AppSettings(
        identity_backend="supabase",
        supabase_url="https://project.supabase.co",
        supabase_service_role_key="service",
    )
    assert isinstance(build_identity_provider(hosted, database), SupabaseIdentityProvider)

    with pytest.raises(ValueError):
        build_identity_provider(AppSettings(identity_backend="supabase"), database)


def test_failure_boundary_keeps_known_errors_and_wraps_the_rest():
    with pytest.raises(ValidationError):
        with failure_boundary("Failed to do it"):
            raise ValidationError("bad input")

    with pytest.raises(UnexpectedError) as excinfo:
        with failure_boundary("Failed to do it"):
            raise KeyError("boom")
    assert excinfo.value.message == "Failed to do it"
    assert excinfo.value.status_code == 500
    assert isinstance(excinfo.value.__cause__, KeyError)


async def test_direct_auth_backend_needs_hosted_project_and_anon_key():
    assert build_auth_backend(AppSettings()) is None
    assert build_auth_backend(AppSettings(identity_backend="supabase", supabase_url="https://p.supabase.co")) is None

    backend = build_auth_backend(
        AppSettings(identity_backend="supabase", supabase_url="https://p.supabase.co", supabase_anon_key="anon")
    )
    assert isinstance(backend, GoTrueClient)
    await backend.aclose()
