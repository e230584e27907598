"""
Code Search - federated code search for agents

Queries GitHub (REST) and Sourcegraph (GraphQL) concurrently, merges and
ranks the results, caches whole responses in SQLite and records per-provider
metrics. Exposed as a CLI (``code-search``) and an MCP server
(``code-search-mcp``).

Usage:
    from code_search import SearchEngine, SearchQuery

    response = await engine.search(SearchQuery(text="tokio::select!", providers=("github", "sourcegraph")))
    for r in response.results:
        print(f"{r.repo}/{r.path}: {r.stars} stars")
"""

from .application.search import SearchEngine
from .domain.entities import (
    ProviderFailure,
    SearchFilters,
    SearchQuery,
    SearchResponse,
    SearchResult,
)
from .shared.exceptions import CodeSearchError, FailureKind, ProviderError

__version__ = "0.1.0"

__all__ = [
    "CodeSearchError",
    "FailureKind",
    "ProviderError",
    "ProviderFailure",
    "SearchEngine",
    "SearchFilters",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
]
