"""Metric CRUD routes, scoped to the authenticated caller."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..errors import failure_boundary
from ..identity import IdentityProvider
from ..schemas import (
    Identity,
    MetricCreate,
    MetricListResponse,
    MetricResponse,
    MetricUpdate,
    SuccessResponse,
)
from ..services import MetricService
from .dependencies import get_identity_dependency

logger = logging.getLogger(__name__)


def get_metrics_router(service: MetricService, provider: IdentityProvider) -> APIRouter:
    router = APIRouter(prefix="/metrics", tags=["metrics"])
    current_identity = get_identity_dependency(provider)

    @router.get("", response_model=MetricListResponse)
    async def list_metrics(identity: Identity = Depends(current_identity)) -> MetricListResponse:
        with failure_boundary("Failed to fetch metrics"):
            metrics = await service.list_metrics(identity.id)
        logger.info("Found %d metrics for user %s", len(metrics), identity.id)
        return MetricListResponse(metrics=metrics)

    @router.post("", response_model=MetricResponse)
    async def create_metric(
        payload: MetricCreate,
        identity: Identity = Depends(current_identity),
    ) -> MetricResponse:
        with failure_boundary("Failed to create metric"):
            metric = await service.create_metric(identity.id, payload)
        logger.info("Created metric %s for user %s", metric.id, identity.id)
        return MetricResponse(metric=metric)

    @router.put("/{metric_id}", response_model=MetricResponse)
    async def update_metric(
        metric_id: str,
        payload: MetricUpdate,
        identity: Identity = Depends(current_identity),
    ) -> MetricResponse:
        with failure_boundary("Failed to update metric"):
            metric = await service.update_metric(identity.id, metric_id, payload)
        logger.info("Updated metric %s for user %s", metric_id, identity.id)
        return MetricResponse(metric=metric)

    @router.delete("/{metric_id}", response_model=SuccessResponse)
    async def delete_metric(metric_id: str, identity: Identity = Depends(current_identity)) -> SuccessResponse:
        with failure_boundary("Failed to delete metric"):
            await service.delete_metric(identity.id, metric_id)
        logger.info("Deleted metric %s for user %s", metric_id, identity.id)
        return SuccessResponse()

    return router


__all__ = ["get_metrics_router"]
