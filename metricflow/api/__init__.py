"""HTTP surface of the MetricFlow service."""
