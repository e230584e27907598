"""Metrics sink implementations."""

from .metrics_store import SqliteMetricsStore, percentile

__all__ = ["SqliteMetricsStore", "percentile"]
