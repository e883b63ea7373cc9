"""MetricFlow: business KPI tracking API and client."""

from .schemas import Category, Identity, Metric, Session

__version__ = "0.1.0"

__all__ = [
    "Category",
    "Identity",
    "Metric",
    "Session",
    "__version__",
]
