"""
Contracts the search engine depends on.

The engine only talks to these abstractions; concrete implementations live in
``code_search.infrastructure`` and are wired together by the DI container.

- ``SearchProvider``: one external code search backend
- ``CacheStore``: durable key -> response mapping with expiry
- ``MetricsSink``: append-only record of provider invocations
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .entities import SearchQuery, SearchResponse, SearchResult


# =============================================================================
# Providers
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProviderCapabilities:
    """What a provider can express, and how hard it may be called."""
    regex: bool = False
    structural: bool = False
    symbol_search: bool = False
    rate_limit_requests: int = 30
    rate_limit_window_s: float = 60.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "regex": self.regex,
            "structural": self.structural,
            "symbol_search": self.symbol_search,
            "rate_limit": {
                "requests": self.rate_limit_requests,
                "window_s": self.rate_limit_window_s,
            },
        }


class SearchProvider(ABC):
    """
    Uniform interface over a code search backend.

    New backends are added by subclassing and registering the instance
    under its ``name`` in the provider mapping given to the engine.

    ``search`` raises ``ProviderError`` (with a ``FailureKind``) on failure and
    must bound its own duration. ``validate`` never raises.
    """

    name: str
    capabilities: ProviderCapabilities

    @abstractmethod
    async def search(self, query: SearchQuery) -> list[SearchResult]:
        """Run ``query`` against the backend and return normalized results."""

    @abstractmethod
    async def validate(self) -> bool:
        """Best-effort connectivity / credential check."""

    async def close(self) -> None:  # noqa: B027
        """Release network resources. Default: nothing to release."""


# =============================================================================
# Cache
# =============================================================================


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of the response cache."""
    entries: int
    size_bytes: int
    oldest_entry: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": self.entries,
            "size_bytes": self.size_bytes,
            "oldest_entry": self.oldest_entry.isoformat() if self.oldest_entry else None,
        }


@runtime_checkable
class CacheStore(Protocol):
    """Durable key -> SearchResponse mapping with per-entry expiry."""

    def get(self, key: str) -> SearchResponse | None: ...

    def set(self, key: str, value: SearchResponse, ttl_seconds: int) -> None: ...

    def clear(self, pattern: str | None = None) -> int: ...

    def stats(self) -> CacheStats: ...


# =============================================================================
# Metrics
# =============================================================================


@dataclass(frozen=True, slots=True)
class MetricRecord:
    """One provider invocation (or cache hit attributed to a provider)."""
    provider: str
    cache_hit: bool
    query: str | None = None
    results: int | None = None
    elapsed_ms: int | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ProviderStats:
    """Latency and reliability summary for one provider."""
    provider: str
    requests: int
    errors: int
    p50: int
    p95: int
    p99: int
    cache_hit_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "requests": self.requests,
            "errors": self.errors,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
            "cache_hit_rate": self.cache_hit_rate,
        }


@runtime_checkable
class MetricsSink(Protocol):
    """Append-only store of ``MetricRecord`` rows."""

    def record(self, entry: MetricRecord) -> None: ...

    def stats(self, since_seconds: int = 86400) -> list[ProviderStats]: ...
