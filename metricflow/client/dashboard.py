"""Pure view helpers for the metrics dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..schemas import Category, Metric

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
SORT_RECENT = "recent"
SORT_NAME = "name"
SORT_PROGRESS = "progress"
SORT_KEYS = (SORT_RECENT, SORT_NAME, SORT_PROGRESS)

ON_TRACK_THRESHOLD = 80.0
AT_RISK_THRESHOLD = 50.0


def progress_percent(current_value: float, target_value: float) -> float:
    """Return progress toward target in percent, clamped to [0, 100].

    A target of zero or below has no meaningful ratio and yields 0.0.
    """

    if target_value <= 0:
        return 0.0
    return max(0.0, min(current_value / target_value * 100.0, 100.0))


def progress_band(percent: float) -> str:
    if percent >= ON_TRACK_THRESHOLD:
        return "on_track"
    if percent >= AT_RISK_THRESHOLD:
        return "at_risk"
    return "behind"


def time_ago(timestamp: datetime, now: datetime | None = None) -> str:
    """Relative "last updated" text shown on a metric card."""

    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days == 1:
        return "Yesterday"
    return f"{days} days ago"


def coerce_metrics(records: Iterable[Any]) -> list[Metric]:
    """Parse raw API records, dropping entries with missing names or values."""

    metrics: list[Metric] = []
    for record in records:
        if record is None:
            continue
        try:
            metrics.append(record if isinstance(record, Metric) else Metric.model_validate(record))
        except PydanticValidationError:
            logger.debug("Dropping incomplete metric record: %r", record)
    return metrics


def filter_and_sort(metrics: Sequence[Metric], category: str = ALL_CATEGORIES, sort_by: str = SORT_RECENT) -> list[Metric]:
    if category != ALL_CATEGORIES:
        visible = [m for m in metrics if m.category == category]
    else:
        visible = list(metrics)

    if sort_by == SORT_NAME:
        visible.sort(key=lambda m: m.metric_name.casefold())
    elif sort_by == SORT_PROGRESS:
        visible.sort(key=lambda m: progress_percent(m.current_value, m.target_value), reverse=True)
    else:
        visible.sort(key=lambda m: m.last_updated, reverse=True)
    return visible


@dataclass(frozen=True)
class DashboardSummary:
    total: int
    on_track: int
    needs_attention: int


def summarize(metrics: Sequence[Metric]) -> DashboardSummary:
    on_track = sum(1 for m in metrics if progress_percent(m.current_value, m.target_value) >= ON_TRACK_THRESHOLD)
    return DashboardSummary(total=len(metrics), on_track=on_track, needs_attention=len(metrics) - on_track)


def category_options() -> list[str]:
    return [ALL_CATEGORIES, *(c.value for c in Category)]


__all__ = [
    "ALL_CATEGORIES",
    "DashboardSummary",
    "SORT_KEYS",
    "SORT_NAME",
    "SORT_PROGRESS",
    "SORT_RECENT",
    "category_options",
    "coerce_metrics",
    "filter_and_sort",
    "progress_band",
    "progress_percent",
    "summarize",
    "time_ago",
]
