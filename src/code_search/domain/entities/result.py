"""
Search results, provider failures and the merged response.

Architecture Decision:
    Plain dataclasses with explicit ``to_dict`` / ``from_dict``. The response
    cache stores ``json.dumps(response.to_dict())`` and must read back an
    equal ``SearchResponse``, so every field round-trips through JSON types.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from code_search.shared.exceptions import FailureKind, ProviderError

from .query import SearchQuery


@dataclass(frozen=True, slots=True)
class SearchResult:
    """
    One matching file region, normalized across providers.

    ``url`` is the permalink and doubles as the result identity for
    de-duplication.
    """
    url: str
    raw_url: str
    repo: str                     # "owner/name"
    path: str
    lines: tuple[int, int]        # (start, end), 1-based
    snippet: str
    language: str
    stars: int
    provider: str
    score: float                  # relevance, 0.0 - 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "raw_url": self.raw_url,
            "repo": self.repo,
            "path": self.path,
            "lines": [self.lines[0], self.lines[1]],
            "snippet": self.snippet,
            "language": self.language,
            "stars": self.stars,
            "provider": self.provider,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchResult:
        start, end = data["lines"]
        return cls(
            url=data["url"],
            raw_url=data["raw_url"],
            repo=data["repo"],
            path=data["path"],
            lines=(int(start), int(end)),
            snippet=data["snippet"],
            language=data["language"],
            stars=int(data["stars"]),
            provider=data["provider"],
            score=float(data["score"]),
        )


@dataclass(frozen=True, slots=True)
class ProviderFailure:
    """A failed provider invocation, reported as data rather than raised."""
    provider: str
    message: str
    kind: FailureKind = FailureKind.UNKNOWN

    @classmethod
    def from_exception(cls, provider: str, error: BaseException) -> ProviderFailure:
        """
        Classify an exception raised by ``provider``.

        The failure always carries the id the provider was registered under.
        A ``ProviderError`` keeps its kind; anything else is ``UNKNOWN``.
        """
        if isinstance(error, ProviderError):
            return cls(provider=provider, message=error.message, kind=error.kind)
        return cls(provider=provider, message=str(error) or type(error).__name__, kind=FailureKind.UNKNOWN)

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "message": self.message, "kind": self.kind.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProviderFailure:
        return cls(
            provider=data["provider"],
            message=data["message"],
            kind=FailureKind(data.get("kind", FailureKind.UNKNOWN.value)),
        )


@dataclass(frozen=True, slots=True)
class SearchResponse:
    """
    Merged answer to one ``SearchQuery``.

    ``search_elapsed_ms`` is only set on responses served from cache, where it
    carries the elapsed time of the search that originally produced them.
    An empty, uncached, error-free response is a normal outcome.
    """
    query: SearchQuery
    results: tuple[SearchResult, ...] = ()
    cached: bool = False
    elapsed_ms: int = 0
    errors: tuple[ProviderFailure, ...] = ()
    search_elapsed_ms: int | None = None
    total: int = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))
        if not isinstance(self.errors, tuple):
            object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "total", len(self.results))

    def as_cache_hit(self, elapsed_ms: int) -> SearchResponse:
        """Copy of a cached response, re-stamped for the current call."""
        return replace(
            self,
            cached=True,
            elapsed_ms=elapsed_ms,
            search_elapsed_ms=self.elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "query": self.query.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "total": self.total,
            "cached": self.cached,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.search_elapsed_ms is not None:
            result["search_elapsed_ms"] = self.search_elapsed_ms
        result["errors"] = [e.to_dict() for e in self.errors]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchResponse:
        return cls(
            query=SearchQuery.from_dict(data["query"]),
            results=tuple(SearchResult.from_dict(r) for r in data.get("results", [])),
            cached=bool(data.get("cached", False)),
            elapsed_ms=int(data.get("elapsed_ms", 0)),
            errors=tuple(ProviderFailure.from_dict(e) for e in data.get("errors", [])),
            search_elapsed_ms=data.get("search_elapsed_ms"),
        )
