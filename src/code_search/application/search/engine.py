"""
SearchEngine - Federated code search orchestration.

Flow for one ``search(query)`` call:

1. Normalize the query and derive its cache key
2. Cache lookup; a hit short-circuits everything else
3. Resolve requested provider ids against the configured providers
   (unknown / unconfigured ids are skipped silently)
4. Fan out to every active provider concurrently and wait for all of them
5. Collect results and failures per provider, in normalized provider order
6. Deduplicate, re-rank and truncate (ResultAggregator)
7. Store the response in the cache and return it

Failure isolation:
    Provider failures become ``ProviderFailure`` entries in the response.
    Cache and metrics failures are logged and otherwise ignored. For a
    well-formed query ``search`` never raises.

There is no retry, timeout or cancellation at this layer. Each provider
bounds its own request duration and gets exactly one attempt per call.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from code_search.domain.contracts import MetricRecord
from code_search.domain.entities import (
    ProviderFailure,
    SearchResponse,
    SearchResult,
    compute_cache_key,
    normalize_query,
)
from code_search.shared.async_utils import best_effort, elapsed_ms, gather_settled

from .result_aggregator import ResultAggregator

if TYPE_CHECKING:
    from collections.abc import Mapping

    from code_search.domain.contracts import CacheStore, MetricsSink, SearchProvider
    from code_search.domain.entities import SearchQuery

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 3600


class SearchEngine:
    """
    Fans one query out to several code search providers and merges the answers.

    One instance is built per process and shared by every request handler.
    The cache and metrics stores must be safe for concurrent callers; the
    engine adds no locking of its own.

    Example:
        engine = SearchEngine(
            providers={"github": github, "sourcegraph": sourcegraph},
            cache=SqliteResponseCache(path),
            metrics=SqliteMetricsStore(path),
            default_ttl=3600,
        )
        response = await engine.search(SearchQuery(text="tokio::select!"))
    """

    def __init__(
        self,
        providers: Mapping[str, SearchProvider],
        cache: CacheStore,
        metrics: MetricsSink,
        default_ttl: int = DEFAULT_CACHE_TTL,
        aggregator: ResultAggregator | None = None,
    ) -> None:
        self._providers = dict(providers)
        self._cache = cache
        self._metrics = metrics
        self._default_ttl = default_ttl
        self._aggregator = aggregator or ResultAggregator()

    @property
    def available_providers(self) -> list[str]:
        """Ids of configured providers, sorted."""
        return sorted(self._providers)

    async def search(self, query: SearchQuery) -> SearchResponse:
        """
        Run a federated search.

        Args:
            query: Caller query; normalized internally

        Returns:
            Merged response. ``cached`` tells whether it came from the cache,
            ``errors`` lists providers that failed.
        """
        normalized = normalize_query(query)
        key = compute_cache_key(normalized)
        started = time.monotonic()

        cached = self._cache_lookup(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
            self._record_cache_hit(normalized, cached)
            return cached.as_cache_hit(elapsed_ms(started))
        logger.debug(f"Cache MISS: {key}")

        active = self._resolve_providers(normalized.providers)
        described = f"q={normalized.text!r} providers={[name for name, _ in active]}"
        if not normalized.filters.is_empty():
            described += f" filters={normalized.filters.to_dict()}"
        logger.info(f"Search request: {described}")

        outcomes = await gather_settled(
            *(provider.search(normalized) for _, provider in active),
            started_at=started,
        )

        # Accumulators are only touched after every invocation has settled
        results: list[SearchResult] = []
        errors: list[ProviderFailure] = []

        for (name, _), outcome in zip(active, outcomes, strict=True):
            if outcome.ok:
                found = list(outcome.value or [])
                results.extend(found)
                logger.info(f"Provider {name}: {len(found)} results in {outcome.elapsed_ms}ms")
                best_effort(
                    "metrics.record",
                    self._metrics.record,
                    MetricRecord(
                        provider=name,
                        cache_hit=False,
                        query=normalized.text,
                        results=len(found),
                        elapsed_ms=outcome.elapsed_ms,
                    ),
                )
            else:
                failure = ProviderFailure.from_exception(name, outcome.error)
                errors.append(failure)
                logger.warning(f"Provider {name} failed ({failure.kind.value}): {failure.message}")
                best_effort(
                    "metrics.record",
                    self._metrics.record,
                    MetricRecord(
                        provider=name,
                        cache_hit=False,
                        query=normalized.text,
                        error=failure.message,
                    ),
                )

        merged, stats = self._aggregator.aggregate(results, normalized.limit)
        logger.debug(f"Aggregation: {stats.to_dict()}")

        response = SearchResponse(
            query=normalized,
            results=merged,
            cached=False,
            elapsed_ms=elapsed_ms(started),
            errors=errors,
        )

        ttl = query.cache_ttl if query.cache_ttl is not None else self._default_ttl
        best_effort("cache.set", self._cache.set, key, response, ttl)

        return response

    async def validate_providers(self) -> dict[str, bool]:
        """Run ``validate()`` on every configured provider concurrently."""
        names = self.available_providers
        outcomes = await gather_settled(*(self._providers[name].validate() for name in names))
        return {name: bool(outcome.ok and outcome.value) for name, outcome in zip(names, outcomes, strict=True)}

    async def close(self) -> None:
        """Close provider network clients."""
        for name in self.available_providers:
            try:
                await self._providers[name].close()
            except Exception as e:
                logger.warning(f"Closing provider {name} failed: {e}")

    # =========================================================================
    # Internals
    # =========================================================================

    def _cache_lookup(self, key: str) -> SearchResponse | None:
        """Cache read; any storage error is treated as a miss."""
        try:
            return self._cache.get(key)
        except Exception as e:
            logger.warning(f"Cache lookup failed, treating as miss: {e}")
            return None

    def _resolve_providers(self, requested: tuple[str, ...]) -> list[tuple[str, SearchProvider]]:
        active: list[tuple[str, SearchProvider]] = []
        for name in requested:
            provider = self._providers.get(name)
            if provider is None:
                logger.debug(f"Provider {name!r} not configured, skipping")
                continue
            active.append((name, provider))
        return active

    def _record_cache_hit(self, normalized: SearchQuery, cached: SearchResponse) -> None:
        """One cache-hit metric per configured provider of the query."""
        for name in normalized.providers:
            if name not in self._providers:
                continue
            best_effort(
                "metrics.record",
                self._metrics.record,
                MetricRecord(
                    provider=name,
                    cache_hit=True,
                    query=normalized.text,
                    results=cached.total,
                    elapsed_ms=0,
                ),
            )
