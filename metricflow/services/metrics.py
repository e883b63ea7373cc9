"""Metric records stored in the key-value store, namespaced per owner.

Every key is ``metrics:{user_id}:{metric_id}``. The ``user_id`` segment always
comes from the authenticated identity, so a caller can only ever address
their own records; another user's metric id simply resolves to nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFound
from ..schemas import (
    DEFAULT_CATEGORY,
    DEFAULT_METRIC_NAME,
    Metric,
    MetricCreate,
    MetricUpdate,
)
from ..store import KeyValueStore

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "metrics"


def user_prefix(user_id: str) -> str:
    return f"{KEY_NAMESPACE}:{user_id}:"


def metric_key(user_id: str, metric_id: str) -> str:
    return f"{user_prefix(user_id)}{metric_id}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_timestamp(previous: datetime) -> datetime:
    # last_updated must move forward even when the clock has not ticked.
    now = _utcnow()
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class MetricService:
    def __init__(self, store: KeyValueStore):
        self._store = store

    async def list_metrics(self, user_id: str) -> list[Metric]:
        records = await self._store.get_by_prefix(user_prefix(user_id))
        metrics: list[Metric] = []
        for record in records:
            try:
                metrics.append(Metric.model_validate(record))
            except PydanticValidationError:
                logger.warning("Skipping malformed metric record for user %s", user_id)
        return metrics

    async def get_metric(self, user_id: str, metric_id: str) -> Metric:
        record = await self._store.get(metric_key(user_id, metric_id))
        if record is None:
            raise NotFound()
        return Metric.model_validate(record)

    async def create_metric(self, user_id: str, payload: MetricCreate) -> Metric:
        now = _utcnow()
        metric = Metric(
            id=str(uuid4()),
            user_id=user_id,
            metric_name=payload.metric_name.strip() if payload.metric_name else DEFAULT_METRIC_NAME,
            current_value=payload.current_value if payload.current_value is not None else 0.0,
            target_value=payload.target_value if payload.target_value is not None else 0.0,
            unit=payload.unit or "",
            category=(payload.category or DEFAULT_CATEGORY).value,
            created_at=now,
            last_updated=now,
        )
        await self._store.set(metric_key(user_id, metric.id), _to_record(metric))
        return metric

    async def update_metric(self, user_id: str, metric_id: str, payload: MetricUpdate) -> Metric:
        existing = await self.get_metric(user_id, metric_id)
        updated = existing.model_copy(
            update={
                "metric_name": payload.metric_name,
                "current_value": payload.current_value,
                "target_value": payload.target_value,
                "unit": payload.unit,
                "category": payload.category.value,
                "last_updated": _next_timestamp(existing.last_updated),
            }
        )
        await self._store.set(metric_key(user_id, metric_id), _to_record(updated))
        return updated

    async def delete_metric(self, user_id: str, metric_id: str) -> None:
        key = metric_key(user_id, metric_id)
        if await self._store.get(key) is None:
            raise NotFound()
        await self._store.delete(key)


def _to_record(metric: Metric) -> dict[str, Any]:
    return metric.model_dump(mode="json")


__all__ = ["KEY_NAMESPACE", "MetricService", "metric_key", "user_prefix"]
