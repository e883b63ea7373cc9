from .metrics import MetricService, metric_key, user_prefix

__all__ = ["MetricService", "metric_key", "user_prefix"]
