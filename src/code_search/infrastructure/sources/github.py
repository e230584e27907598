"""
GitHub Code Search (REST) Provider

API Documentation: https://docs.github.com/en/rest/search/search#search-code

Features:
- Code search with text-match fragments
- Repository star counts (one lookup per distinct repository, concurrent)
- Qualifier-based filters (language:, repo:, org:, path:, filename:, extension:)

Rate Limits:
- Code search: 30 requests/minute (authenticated), token required
- Core API (star lookups): 5000 requests/hour

GitHub reports an exhausted rate limit as 403 with
``X-RateLimit-Remaining: 0``; that case is classified as RATE_LIMIT, not AUTH.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from cachetools import TTLCache

from code_search.domain.contracts import ProviderCapabilities, SearchProvider
from code_search.domain.entities import GITHUB, SearchResult
from code_search.infrastructure.sources.base_client import VALIDATE_TIMEOUT, BaseAPIClient
from code_search.shared.async_utils import RateLimiter
from code_search.shared.exceptions import FailureKind, ProviderError

if TYPE_CHECKING:
    import httpx

    from code_search.domain.entities import SearchQuery

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
RAW_CONTENT_BASE = "https://raw.githubusercontent.com"
API_VERSION = "2022-11-28"
MAX_PER_PAGE = 100
STAR_LOOKUP_TIMEOUT = 5.0


def build_github_query(query: SearchQuery) -> str:
    """Query text followed by GitHub search qualifiers."""
    parts = [query.text]
    f = query.filters
    if f.language:
        parts.append(f"language:{f.language}")
    if f.repo:
        parts.append(f"repo:{f.repo}")
    if f.org:
        parts.append(f"org:{f.org}")
    if f.path:
        parts.append(f"path:{f.path}")
    if f.filename:
        parts.append(f"filename:{f.filename}")
    if f.extension:
        parts.append(f"extension:{f.extension}")
    return " ".join(parts)


def language_from_path(path: str) -> str:
    """File extension as a language hint, or "unknown"."""
    suffix = PurePosixPath(path).suffix
    return suffix[1:] if suffix else "unknown"


def normalize_item(item: dict[str, Any], stars: dict[str, int]) -> SearchResult:
    """Convert one ``/search/code`` item to a ``SearchResult``."""
    full_name: str = item["repository"]["full_name"]
    path: str = item["path"]
    owner, _, repo_name = full_name.partition("/")

    text_matches = item.get("text_matches") or []
    first_match = text_matches[0] if text_matches else {}
    fragment: str = first_match.get("fragment") or ""
    has_match = bool(first_match.get("matches"))
    line_count = len(fragment.split("\n")) if fragment else 1

    return SearchResult(
        url=item["html_url"],
        raw_url=f"{RAW_CONTENT_BASE}/{owner}/{repo_name}/HEAD/{path}",
        repo=full_name,
        path=path,
        lines=(1, max(1, line_count)),
        snippet=fragment or item.get("name", ""),
        language=language_from_path(path),
        stars=stars.get(full_name, 0),
        provider=GITHUB,
        score=1.0 if has_match else 0.5,
    )


class GitHubProvider(BaseAPIClient, SearchProvider):
    """
    GitHub REST code search adapter.

    Usage:
        provider = GitHubProvider(token="ghp_...")
        results = await provider.search(SearchQuery(text="tokio::select!"))
        ok = await provider.validate()
    """

    name = GITHUB
    capabilities = ProviderCapabilities(
        regex=False,
        structural=False,
        symbol_search=False,
        rate_limit_requests=30,
        rate_limit_window_s=60.0,
    )

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize GitHub provider.

        Args:
            token: Personal access token (code search requires authentication)
            base_url: API root, override for GitHub Enterprise
            timeout: Per-request deadline in seconds
            transport: Optional httpx transport for tests
        """
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": API_VERSION,
            },
            rate_limiter=RateLimiter(
                rate=self.capabilities.rate_limit_requests,
                per=self.capabilities.rate_limit_window_s,
            ),
            transport=transport,
        )
        # full_name -> stargazers_count
        self._star_cache: TTLCache[str, int] = TTLCache(maxsize=2048, ttl=3600)

    def _classify_response(self, response: httpx.Response) -> FailureKind:
        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            return FailureKind.RATE_LIMIT
        return super()._classify_response(response)

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        q = build_github_query(query)
        logger.debug(f"GitHub search: {q}")

        response = await self._request(
            "/search/code",
            params={"q": q, "per_page": min(query.limit, MAX_PER_PAGE)},
            headers={"Accept": "application/vnd.github.text-match+json"},
        )
        data = self._json(response)
        items: list[dict[str, Any]] = data.get("items") or []

        try:
            repos = list(dict.fromkeys(item["repository"]["full_name"] for item in items))
            stars = await self._fetch_star_counts(repos)
            return [normalize_item(item, stars) for item in items]
        except (KeyError, TypeError) as e:
            msg = f"{self.name}: unexpected response shape ({e})"
            raise ProviderError(self.name, msg, FailureKind.UNKNOWN) from e

    async def validate(self) -> bool:
        try:
            await self._request("/user", timeout=VALIDATE_TIMEOUT, rate_limited=False)
        except Exception as e:
            logger.info(f"GitHub validation failed: {e}")
            return False
        return True

    async def _fetch_star_counts(self, repos: list[str]) -> dict[str, int]:
        """
        Star counts for ``repos``; failed lookups are simply missing (0 stars).
        """
        stars = {repo: self._star_cache[repo] for repo in repos if repo in self._star_cache}
        missing = [repo for repo in repos if repo not in stars]
        if not missing:
            return stars

        outcomes = await asyncio.gather(
            *(self._fetch_repo_stars(repo) for repo in missing),
            return_exceptions=True,
        )
        for repo, outcome in zip(missing, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.debug(f"GitHub star lookup failed for {repo}: {outcome}")
                continue
            stars[repo] = outcome
            self._star_cache[repo] = outcome
        return stars

    async def _fetch_repo_stars(self, repo: str) -> int:
        response = await self._request(
            f"/repos/{repo}",
            headers={"Accept": "application/vnd.github+json"},
            timeout=STAR_LOOKUP_TIMEOUT,
            rate_limited=False,
        )
        return int(self._json(response).get("stargazers_count") or 0)
