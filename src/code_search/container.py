"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management. One container, and
therefore one ``SearchEngine``, exists per process and is passed to the CLI
commands and MCP tools that need it.

Usage::

    from code_search.container import ApplicationContainer
    from code_search.settings import Settings

    container = ApplicationContainer()
    container.config.from_dict(Settings.from_env().as_config())

    engine = container.engine()
    cache = container.cache()

    # In tests, override any provider:
    container.search_providers.override(providers.Object({"github": fake_github}))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)


def _create_cache(cache_path: str) -> object:
    """Lazy factory for the SQLite response cache."""
    from code_search.infrastructure.cache import SqliteResponseCache

    return SqliteResponseCache(cache_path)


def _create_metrics(cache_path: str) -> object:
    """Lazy factory for the SQLite metrics store (same database file)."""
    from code_search.infrastructure.metrics import SqliteMetricsStore

    return SqliteMetricsStore(cache_path)


def _create_providers(
    github_token: str | None,
    sourcegraph_url: str,
    sourcegraph_token: str | None,
) -> object:
    """Lazy factory for the provider mapping."""
    from code_search.infrastructure.sources import build_providers

    return build_providers(
        github_token=github_token or None,
        sourcegraph_url=sourcegraph_url,
        sourcegraph_token=sourcegraph_token or None,
    )


def _create_engine(
    providers: object,
    cache: object,
    metrics: object,
    default_ttl: int,
) -> object:
    """Lazy factory for the SearchEngine."""
    from code_search.application.search import SearchEngine

    engine = SearchEngine(
        providers=providers,  # type: ignore[arg-type]
        cache=cache,  # type: ignore[arg-type]
        metrics=metrics,  # type: ignore[arg-type]
        default_ttl=default_ttl,
    )
    logger.info(f"Search engine ready, providers: {engine.available_providers}")
    return engine


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for Code Search.

    Manages creation and lifecycle of all core services:
    - ``cache``: SQLite response cache
    - ``metrics``: SQLite metrics store
    - ``search_providers``: configured provider adapters, keyed by id
    - ``engine``: the federated SearchEngine
    """

    config = providers.Configuration()

    cache = providers.Singleton(
        _create_cache,
        cache_path=config.cache_path,
    )

    metrics = providers.Singleton(
        _create_metrics,
        cache_path=config.cache_path,
    )

    search_providers = providers.Singleton(
        _create_providers,
        github_token=config.github_token,
        sourcegraph_url=config.sourcegraph_url,
        sourcegraph_token=config.sourcegraph_token,
    )

    engine = providers.Singleton(
        _create_engine,
        providers=search_providers,
        cache=cache,
        metrics=metrics,
        default_ttl=config.default_cache_ttl,
    )


__all__ = ["ApplicationContainer"]
