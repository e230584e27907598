"""
SearchQuery - One logical code search, independent of any provider.

A query is normalized before it is hashed, so that two semantically identical
queries share one cache entry:

- the provider list is sorted ascending and de-duplicated
- unset (``None``) filter fields are dropped from the serialized form

Example:
    >>> q = SearchQuery(
    ...     text="nftables limit rate",
    ...     providers=["sourcegraph", "github"],
    ...     filters=SearchFilters(language="yaml"),
    ...     limit=5,
    ... )
    >>> normalize_query(q).providers
    ('github', 'sourcegraph')
    >>> compute_cache_key(q) == compute_cache_key(normalize_query(q))
    True
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from code_search.shared.exceptions import InvalidParameterError

# Built-in provider identifiers
GITHUB = "github"
SOURCEGRAPH = "sourcegraph"
KNOWN_PROVIDERS: tuple[str, ...] = (GITHUB, SOURCEGRAPH)

DEFAULT_LIMIT = 20

# Serialized name -> attribute name
_FILTER_KEYS: dict[str, str] = {
    "language": "language",
    "repo": "repo",
    "org": "org",
    "path": "path",
    "filename": "filename",
    "extension": "extension",
    "regex": "use_regex",
}


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """
    Sparse set of optional search filters.

    ``None`` means "not set"; unset fields never appear in ``to_dict()``.
    Providers ignore filters they cannot express.
    """
    language: str | None = None
    repo: str | None = None          # "owner/name"
    org: str | None = None
    path: str | None = None
    filename: str | None = None
    extension: str | None = None
    use_regex: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Only the fields that are set, in a fixed key order."""
        result: dict[str, Any] = {}
        for key, attr in _FILTER_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SearchFilters:
        """
        Build filters from a mapping, skipping ``None`` values.

        Accepts both the serialized key ``regex`` and the attribute name
        ``use_regex``.
        """
        if not data:
            return cls()
        attrs = set(_FILTER_KEYS.values())
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            attr = _FILTER_KEYS.get(key, key)
            if attr not in attrs:
                raise InvalidParameterError("filters", key, f"one of {sorted(_FILTER_KEYS)}")
            if value is not None:
                kwargs[attr] = value
        return cls(**kwargs)

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """
    A provider-agnostic code search request.

    Attributes:
        text: Free-text search string
        providers: Provider ids to fan out to
        filters: Optional narrowing filters
        limit: Maximum number of merged results (positive)
        cache_ttl: Per-query cache TTL override in seconds
    """
    text: str
    providers: tuple[str, ...] = (GITHUB,)
    filters: SearchFilters = field(default_factory=SearchFilters)
    limit: int = DEFAULT_LIMIT
    cache_ttl: int | None = None

    def __post_init__(self) -> None:
        # Accept any iterable / mapping from callers, store immutable forms
        if not isinstance(self.providers, tuple):
            object.__setattr__(self, "providers", tuple(self.providers))
        if isinstance(self.filters, Mapping):
            object.__setattr__(self, "filters", SearchFilters.from_dict(self.filters))
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise InvalidParameterError("limit", self.limit, "a positive integer")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "text": self.text,
            "providers": list(self.providers),
            "filters": self.filters.to_dict(),
            "limit": self.limit,
        }
        if self.cache_ttl is not None:
            result["cache_ttl"] = self.cache_ttl
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchQuery:
        return cls(
            text=data["text"],
            providers=tuple(data.get("providers") or ()),
            filters=SearchFilters.from_dict(data.get("filters")),
            limit=data.get("limit", DEFAULT_LIMIT),
            cache_ttl=data.get("cache_ttl"),
        )


def normalize_query(query: SearchQuery) -> SearchQuery:
    """
    Return the canonical form of ``query``.

    Pure and idempotent. Providers become a sorted, duplicate-free tuple and
    filters are rebuilt from their set fields only.
    """
    return replace(
        query,
        providers=tuple(sorted(set(query.providers))),
        filters=SearchFilters.from_dict(query.filters.to_dict()),
    )


def canonical_json(query: SearchQuery) -> str:
    """Stable serialization of the normalized query."""
    return json.dumps(
        normalize_query(query).to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_cache_key(query: SearchQuery) -> str:
    """SHA-256 hex digest of the normalized query's canonical JSON."""
    return hashlib.sha256(canonical_json(query).encode("utf-8")).hexdigest()

