"""Domain entities for federated code search."""

from .query import (
    DEFAULT_LIMIT,
    GITHUB,
    KNOWN_PROVIDERS,
    SOURCEGRAPH,
    SearchFilters,
    SearchQuery,
    canonical_json,
    compute_cache_key,
    normalize_query,
)
from .result import ProviderFailure, SearchResponse, SearchResult

__all__ = [
    "DEFAULT_LIMIT",
    "GITHUB",
    "KNOWN_PROVIDERS",
    "SOURCEGRAPH",
    "ProviderFailure",
    "SearchFilters",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "canonical_json",
    "compute_cache_key",
    "normalize_query",
]
