"""
Process configuration.

Environment variables are read here (and only here), then handed to the DI
container as a plain dict. Inner layers receive already-resolved values
through their constructors.

Environment Variables:
    GITHUB_TOKEN: GitHub token; enables the GitHub provider
    SOURCEGRAPH_TOKEN: Optional Sourcegraph token
    SOURCEGRAPH_URL: Sourcegraph instance (default: https://sourcegraph.com)
    CODESEARCH_CACHE_PATH: SQLite file for cache + metrics
        (default: ~/.cache/codesearch/cache.db)
    CODESEARCH_CACHE_TTL: Default cache TTL in seconds (default: 3600)
    CODESEARCH_DEFAULT_LIMIT: Default result limit (default: 20)
    LOG_LEVEL: Logging level (default: INFO)
    LOG_FILE: Optional log file instead of stderr
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from code_search.infrastructure.storage import DEFAULT_DB_PATH
from code_search.shared.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one process."""

    github_token: str | None = None
    sourcegraph_token: str | None = None
    sourcegraph_url: str = "https://sourcegraph.com"
    cache_path: str = str(DEFAULT_DB_PATH)
    default_cache_ttl: int = 3600
    default_limit: int = 20
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric variable is not an integer
        """
        env = os.environ if environ is None else environ
        return cls(
            github_token=_optional(env, "GITHUB_TOKEN"),
            sourcegraph_token=_optional(env, "SOURCEGRAPH_TOKEN"),
            sourcegraph_url=_optional(env, "SOURCEGRAPH_URL") or cls.sourcegraph_url,
            cache_path=_optional(env, "CODESEARCH_CACHE_PATH") or cls.cache_path,
            default_cache_ttl=_int(env, "CODESEARCH_CACHE_TTL", cls.default_cache_ttl),
            default_limit=_int(env, "CODESEARCH_DEFAULT_LIMIT", cls.default_limit),
            log_level=_optional(env, "LOG_LEVEL") or cls.log_level,
            log_file=_optional(env, "LOG_FILE"),
        )

    def as_config(self) -> dict[str, Any]:
        """Dict for ``ApplicationContainer.config.from_dict``."""
        return asdict(self)


def _optional(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    return value or None


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _optional(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from e
