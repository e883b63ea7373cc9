"""Entrypoint for the MetricFlow FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import AppSettings, get_settings
from ..core.logging import setup_logging
from ..core.telemetry import setup_telemetry
from ..database import Database
from ..identity import IdentityProvider, build_identity_provider
from ..schemas import HealthResponse
from ..services import MetricService
from ..store import KeyValueStore, SqlKeyValueStore
from .auth import get_auth_router
from .handlers import register_exception_handlers
from .metrics import get_metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI, db: Database, provider: IdentityProvider):
    await db.create_all()
    try:
        yield
    finally:
        await provider.aclose()
        await db.dispose()


def create_app(
    settings: AppSettings | None = None,
    *,
    db: Database | None = None,
    store: KeyValueStore | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Build the application; collaborators are created here once and handed to every router."""

    settings = settings or get_settings()
    setup_logging(settings.log_level)

    database_instance = db or Database(settings.database_url)
    provider = identity_provider or build_identity_provider(settings, database_instance)
    service = MetricService(store or SqlKeyValueStore(database_instance))

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, database_instance, provider),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    api = APIRouter(prefix=settings.route_prefix.rstrip("/"))
    api.include_router(get_auth_router(provider, settings.password_reset_redirect_url))
    api.include_router(get_metrics_router(service, provider))

    @api.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service=settings.service_name, timestamp=datetime.now(timezone.utc))

    app.include_router(api)
    setup_telemetry(app, settings, engine=database_instance.engine)
    logger.info("MetricFlow configured: %s", settings.dict_for_logging())
    return app


app = create_app()

__all__ = ["app", "create_app"]
