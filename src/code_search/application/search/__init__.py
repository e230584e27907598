"""
Search application services.

- SearchEngine: cache-aware, fault-tolerant fan-out over providers
- ResultAggregator: permalink de-duplication and popularity-weighted ranking
"""

from .engine import DEFAULT_CACHE_TTL, SearchEngine
from .result_aggregator import AggregationStats, ResultAggregator, aggregate_results, rank_score

__all__ = [
    "DEFAULT_CACHE_TTL",
    "AggregationStats",
    "ResultAggregator",
    "SearchEngine",
    "aggregate_results",
    "rank_score",
]
