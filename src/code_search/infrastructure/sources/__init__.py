"""
Code search provider adapters.

- GitHubProvider: GitHub REST code search (requires a token)
- SourcegraphProvider: Sourcegraph GraphQL search (token optional)

``build_providers`` turns resolved configuration into the id -> provider
mapping the search engine consumes. A provider whose credentials are missing
is left out, so queries naming it simply skip it.
"""

from __future__ import annotations

import logging

from code_search.domain.contracts import SearchProvider

from .base_client import BaseAPIClient, classify_status
from .github import GitHubProvider
from .sourcegraph import SOURCEGRAPH_DEFAULT_URL, SourcegraphProvider

logger = logging.getLogger(__name__)


def build_providers(
    github_token: str | None = None,
    sourcegraph_url: str = SOURCEGRAPH_DEFAULT_URL,
    sourcegraph_token: str | None = None,
    timeout: float = 10.0,
) -> dict[str, SearchProvider]:
    """
    Create the configured providers.

    Args:
        github_token: GitHub token; GitHub is skipped without one
        sourcegraph_url: Sourcegraph instance URL
        sourcegraph_token: Optional Sourcegraph token
        timeout: Per-request deadline in seconds

    Returns:
        Mapping of provider id to provider instance
    """
    providers: dict[str, SearchProvider] = {}
    if github_token:
        providers[GitHubProvider.name] = GitHubProvider(github_token, timeout=timeout)
    else:
        logger.info("GITHUB_TOKEN not set, GitHub provider disabled")
    providers[SourcegraphProvider.name] = SourcegraphProvider(
        sourcegraph_url or SOURCEGRAPH_DEFAULT_URL,
        token=sourcegraph_token,
        timeout=timeout,
    )
    return providers


__all__ = [
    "BaseAPIClient",
    "GitHubProvider",
    "SourcegraphProvider",
    "build_providers",
    "classify_status",
]
