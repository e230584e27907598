"""
Code Search MCP Tools

Provides:
- search_code: federated search over GitHub and Sourcegraph
- fetch_file: raw content of a result file
- cache_stats: cache size and per-provider metrics
- cache_clear: drop cached responses

Every tool returns text. Failures are reported as ``Error: ...`` strings so
the agent sees them as a normal tool answer.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated, Literal

import httpx
from pydantic import Field

from code_search.domain.entities import DEFAULT_LIMIT, GITHUB, SearchFilters, SearchQuery
from code_search.presentation.formatters import get_formatter
from code_search.shared.exceptions import CodeSearchError, InvalidQueryError

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from code_search.container import ApplicationContainer

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 10.0

ProviderId = Literal["github", "sourcegraph"]


def register_search_tools(mcp: FastMCP, container: ApplicationContainer) -> None:
    """Register search and cache tools bound to *container*."""

    @mcp.tool()
    async def search_code(
        q: str,
        providers: list[ProviderId] | None = None,
        language: str | None = None,
        repo: str | None = None,
        org: str | None = None,
        path: str | None = None,
        regex: bool | None = None,
        limit: Annotated[int, Field(ge=1, le=100)] | None = None,
        output_format: Literal["json", "markdown"] = "json",
    ) -> str:
        """
        Search GitHub and Sourcegraph for code examples.

        Returns URLs with snippets, de-duplicated and ranked by
        score * ln(stars + 1). Use the raw_url field with fetch_file to read
        the full file.

        Args:
            q: Search text
            providers: Providers to search (default: ["github"])
            language: Filter by programming language
            repo: Filter by repository (owner/repo)
            org: Filter by organization
            path: Filter by file path
            regex: Regex matching (Sourcegraph only)
            limit: Max results, 1-100 (default: 20)
            output_format: "json" (default) or "markdown"

        Returns:
            Search response with results, total, cached, elapsed_ms and errors
        """
        logger.info(f"search_code: q={q!r} providers={providers}")
        try:
            if not q or not q.strip():
                raise InvalidQueryError(q or "")
            query = SearchQuery(
                text=q.strip(),
                providers=tuple(providers) if providers else (GITHUB,),
                filters=SearchFilters(
                    language=language,
                    repo=repo,
                    org=org,
                    path=path,
                    use_regex=regex,
                ),
                limit=limit or DEFAULT_LIMIT,
            )
            response = await container.engine().search(query)
            return get_formatter(output_format).format(response)
        except CodeSearchError as e:
            return f"Error: {e.to_agent_message()}"
        except Exception as e:
            logger.exception("search_code failed")
            return f"Error: {e}"

    @mcp.tool()
    async def fetch_file(url: str) -> str:
        """
        Fetch the raw content of a file returned by search_code.

        Args:
            url: Raw file URL from a search result (use the raw_url field)

        Returns:
            File content as text
        """
        logger.info(f"fetch_file: {url}")
        if not url.startswith(("http://", "https://")):
            return f"Error: not an http(s) URL: {url}"
        try:
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            return f"Error: HTTP {e.response.status_code} fetching {url}"
        except httpx.HTTPError as e:
            return f"Error: {type(e).__name__} fetching {url}: {e}"

    @mcp.tool()
    def cache_stats() -> str:
        """
        Cache and metrics statistics.

        Returns:
            JSON with "cache" (entries, size_bytes, oldest_entry) and
            "metrics" (per provider: requests, errors, p50/p95/p99 latency,
            cache_hit_rate) over the last 24 hours
        """
        try:
            cache = container.cache().stats()
            metrics = container.metrics().stats()
        except CodeSearchError as e:
            return f"Error: {e.to_agent_message()}"
        return json.dumps(
            {"cache": cache.to_dict(), "metrics": [s.to_dict() for s in metrics]},
            indent=2,
        )

    @mcp.tool()
    def cache_clear(pattern: str | None = None) -> str:
        """
        Clear cache entries.

        Args:
            pattern: Optional SQL LIKE pattern over cache keys; all entries
                are removed when omitted

        Returns:
            JSON with the number of deleted entries
        """
        try:
            deleted = container.cache().clear(pattern)
        except CodeSearchError as e:
            return f"Error: {e.to_agent_message()}"
        logger.info(f"cache_clear: pattern={pattern!r} deleted={deleted}")
        return json.dumps({"deleted": deleted})


def register_all_tools(mcp: FastMCP, container: ApplicationContainer) -> dict[str, int]:
    """
    Register every Code Search tool on *mcp*.

    Returns:
        Number of registered tools per category
    """
    register_search_tools(mcp, container)
    stats = {"search": 2, "cache": 2}
    logger.info(f"Registered MCP tools: {stats}")
    return stats


__all__ = ["register_all_tools", "register_search_tools"]
