"""
Sourcegraph Code Search (GraphQL) Provider

API Documentation: https://sourcegraph.com/docs/api/graphql

Features:
- Literal and regular-expression search (``patternType``)
- Repository stars returned inline (no extra lookups)
- Works anonymously against the public instance; a token raises limits and
  unlocks private instances

Query syntax:
    text lang:<language> repo:<owner/name> repo:<org>/ file:<path> file:<filename>
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from code_search.domain.contracts import ProviderCapabilities, SearchProvider
from code_search.domain.entities import SOURCEGRAPH, SearchResult
from code_search.infrastructure.sources.base_client import VALIDATE_TIMEOUT, BaseAPIClient
from code_search.infrastructure.sources.github import RAW_CONTENT_BASE, language_from_path
from code_search.shared.async_utils import RateLimiter
from code_search.shared.exceptions import FailureKind, ProviderError

if TYPE_CHECKING:
    import httpx

    from code_search.domain.entities import SearchQuery

logger = logging.getLogger(__name__)

SOURCEGRAPH_DEFAULT_URL = "https://sourcegraph.com"
GRAPHQL_PATH = "/.api/graphql"
SOURCEGRAPH_SCORE = 0.8

SEARCH_CODE_QUERY = """
query SearchCode($query: String!, $patternType: SearchPatternType!) {
  search(query: $query, patternType: $patternType) {
    results {
      results {
        __typename
        ... on FileMatch {
          repository { name stars }
          file { path url canonicalURL }
          lineMatches { lineNumber preview }
        }
      }
      limitHit
    }
  }
}
"""


def build_sourcegraph_query(query: SearchQuery) -> str:
    """Query text followed by Sourcegraph search filters."""
    parts = [query.text]
    f = query.filters
    if f.language:
        parts.append(f"lang:{f.language}")
    if f.repo:
        parts.append(f"repo:{f.repo}")
    if f.org:
        parts.append(f"repo:{f.org}/")
    if f.path:
        parts.append(f"file:{f.path}")
    if f.filename:
        parts.append(f"file:{f.filename}")
    return " ".join(parts)


def normalize_file_match(match: dict[str, Any], base_url: str) -> SearchResult:
    """Convert one ``FileMatch`` node to a ``SearchResult``."""
    line_matches: list[dict[str, Any]] = match.get("lineMatches") or []
    first = line_matches[0] if line_matches else {}
    last = line_matches[-1] if line_matches else first

    repo = match["repository"]["name"].removeprefix("github.com/")
    path = match["file"]["path"]

    return SearchResult(
        url=f"{base_url}{match['file']['canonicalURL']}",
        raw_url=f"{RAW_CONTENT_BASE}/{repo}/HEAD/{path}",
        repo=repo,
        path=path,
        lines=(first.get("lineNumber", 1), last.get("lineNumber", 1)),
        snippet="\n".join(m.get("preview", "") for m in line_matches),
        language=language_from_path(path),
        stars=int(match["repository"].get("stars") or 0),
        provider=SOURCEGRAPH,
        score=SOURCEGRAPH_SCORE,
    )


class SourcegraphProvider(BaseAPIClient, SearchProvider):
    """
    Sourcegraph GraphQL code search adapter.

    Usage:
        provider = SourcegraphProvider()  # public sourcegraph.com
        provider = SourcegraphProvider("https://sg.example.com", token="sgp_...")
        results = await provider.search(query)
    """

    name = SOURCEGRAPH
    capabilities = ProviderCapabilities(
        regex=True,
        structural=True,
        symbol_search=True,
        rate_limit_requests=100,
        rate_limit_window_s=60.0,
    )

    def __init__(
        self,
        base_url: str = SOURCEGRAPH_DEFAULT_URL,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Sourcegraph provider.

        Args:
            base_url: Instance root URL
            token: Optional access token
            timeout: Per-request deadline in seconds
            transport: Optional httpx transport for tests
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"token {token}"
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            rate_limiter=RateLimiter(
                rate=self.capabilities.rate_limit_requests,
                per=self.capabilities.rate_limit_window_s,
            ),
            transport=transport,
        )

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        sg_query = build_sourcegraph_query(query)
        pattern_type = "regexp" if query.filters.use_regex else "literal"
        logger.debug(f"Sourcegraph search ({pattern_type}): {sg_query}")

        response = await self._request(
            GRAPHQL_PATH,
            method="POST",
            json={
                "query": SEARCH_CODE_QUERY,
                "variables": {"query": sg_query, "patternType": pattern_type},
            },
        )
        payload = self._json(response)

        try:
            nodes = self._extract_nodes(payload)
            file_matches = [node for node in nodes if node.get("__typename") == "FileMatch"]
            return [normalize_file_match(node, self._base_url) for node in file_matches[: query.limit]]
        except (KeyError, TypeError, AttributeError) as e:
            msg = f"{self.name}: unexpected response shape ({e})"
            raise ProviderError(self.name, msg, FailureKind.UNKNOWN) from e

    async def validate(self) -> bool:
        try:
            await self._request(GRAPHQL_PATH, timeout=VALIDATE_TIMEOUT, rate_limited=False)
        except Exception as e:
            logger.info(f"Sourcegraph validation failed: {e}")
            return False
        return True

    def _extract_nodes(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Result nodes from a GraphQL payload; GraphQL errors become failures."""
        data = payload.get("data")
        errors = payload.get("errors") or []
        if errors and not data:
            detail = "; ".join(str(err.get("message", err)) for err in errors)
            msg = f"{self.name}: GraphQL error: {detail}"
            raise ProviderError(self.name, msg, FailureKind.UNKNOWN)
        if not data or not data.get("search"):
            return []
        results = data["search"].get("results") or {}
        return results.get("results") or []
