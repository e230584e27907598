"""
ResultAggregator - Multi-Provider Result Merging and Ranking

This module merges code search results coming from several providers:
1. Deduplication by permalink (first occurrence in merge order wins)
2. Re-ranking by ``score * ln(stars + 1)``
3. Truncation to the requested limit

Architecture Decision:
    ResultAggregator operates on SearchResult objects.
    It does NOT make API calls - purely processes existing results.

    The rank score balances match quality against repository popularity.
    The logarithm compresses the long-tailed star distribution so that a
    single very popular repository cannot dominate every query.

    Ordering is fully deterministic: Python's ``sorted`` is stable, so results
    with equal rank scores keep their post-dedup input order.

Example:
    >>> from code_search.application.search import aggregate_results
    >>> merged = aggregate_results(github_results + sourcegraph_results, limit=20)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from code_search.domain.entities import SearchResult


def rank_score(result: SearchResult) -> float:
    """Rank score of a single result: ``score * ln(stars + 1)``."""
    return result.score * math.log(result.stars + 1)


@dataclass
class AggregationStats:
    """Statistics from aggregation process."""

    total_input: int = 0
    unique_results: int = 0
    duplicates_removed: int = 0
    truncated: int = 0
    by_provider: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_input": self.total_input,
            "unique_results": self.unique_results,
            "duplicates_removed": self.duplicates_removed,
            "truncated": self.truncated,
            "by_provider": self.by_provider,
        }


class ResultAggregator:
    """
    Deduplicates, re-ranks and truncates provider results.

    Usage:
        aggregator = ResultAggregator()
        merged, stats = aggregator.aggregate(results, limit=10)
    """

    def aggregate(
        self,
        results: Iterable[SearchResult],
        limit: int,
    ) -> tuple[list[SearchResult], AggregationStats]:
        """
        Merge results into the final, ordered list.

        Args:
            results: Results in merge order (provider order, then provider rank)
            limit: Maximum number of results to keep (positive)

        Returns:
            Tuple of (ranked results, aggregation statistics)
        """
        if limit < 1:
            msg = f"limit must be a positive integer, got {limit!r}"
            raise ValueError(msg)

        stats = AggregationStats()
        unique = self.deduplicate(results, stats)
        ranked = self.rank(unique)

        stats.truncated = max(0, len(ranked) - limit)
        return ranked[:limit], stats

    @staticmethod
    def deduplicate(
        results: Iterable[SearchResult],
        stats: AggregationStats | None = None,
    ) -> list[SearchResult]:
        """
        Keep the first result seen for each permalink.

        Later duplicates are dropped entirely; their score and star count are
        neither merged nor compared.
        """
        stats = stats if stats is not None else AggregationStats()
        seen: set[str] = set()
        unique: list[SearchResult] = []

        for result in results:
            stats.total_input += 1
            stats.by_provider[result.provider] = stats.by_provider.get(result.provider, 0) + 1
            if result.url in seen:
                stats.duplicates_removed += 1
                continue
            seen.add(result.url)
            unique.append(result)

        stats.unique_results = len(unique)
        return unique

    @staticmethod
    def rank(results: Sequence[SearchResult]) -> list[SearchResult]:
        """Sort by descending rank score; ties keep their input order."""
        return sorted(results, key=rank_score, reverse=True)


# =============================================================================
# Convenience Functions
# =============================================================================


def aggregate_results(results: Iterable[SearchResult], limit: int) -> list[SearchResult]:
    """
    Deduplicate, re-rank and truncate results.

    Args:
        results: Results in merge order
        limit: Maximum number of results (positive)

    Returns:
        At most ``limit`` distinct results, highest rank score first
    """
    merged, _ = ResultAggregator().aggregate(results, limit)
    return merged
