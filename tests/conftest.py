"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from code_search.domain.contracts import ProviderCapabilities, SearchProvider
from code_search.domain.entities import SearchQuery, SearchResult
from code_search.infrastructure.cache import SqliteResponseCache
from code_search.infrastructure.metrics import SqliteMetricsStore

# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir):
    """SQLite file shared by cache and metrics, as in production."""
    return temp_dir / "cache.db"


@pytest.fixture
def response_cache(db_path):
    cache = SqliteResponseCache(db_path)
    yield cache
    cache.close()


@pytest.fixture
def metrics_store(db_path):
    store = SqliteMetricsStore(db_path)
    yield store
    store.close()


# ============================================================
# Domain Factories
# ============================================================


def make_result(
    url: str = "https://github.com/acme/widgets/blob/main/src/lib.rs",
    *,
    repo: str = "acme/widgets",
    path: str = "src/lib.rs",
    stars: int = 10,
    score: float = 1.0,
    provider: str = "github",
    snippet: str = "fn main() {}",
) -> SearchResult:
    """Build a SearchResult with sensible defaults."""
    return SearchResult(
        url=url,
        raw_url=f"https://raw.githubusercontent.com/{repo}/HEAD/{path}",
        repo=repo,
        path=path,
        lines=(1, 3),
        snippet=snippet,
        language=path.rsplit(".", 1)[-1] if "." in path else "unknown",
        stars=stars,
        provider=provider,
        score=score,
    )


@pytest.fixture
def result_factory():
    """Factory fixture for SearchResult objects."""
    return make_result


@pytest.fixture
def sample_query():
    return SearchQuery(
        text="nftables limit rate",
        providers=("sourcegraph", "github"),
        filters={"language": "yaml"},
        limit=5,
    )


class FakeProvider(SearchProvider):
    """
    In-memory provider.

    Returns ``results`` or raises ``error``; counts calls and remembers the
    last query it received.
    """

    capabilities = ProviderCapabilities()

    def __init__(self, name, results=None, error=None, valid=True):
        self.name = name
        self.results = list(results or [])
        self.error = error
        self.valid = valid
        self.calls = 0
        self.last_query = None
        self.closed = False

    async def search(self, query):
        self.calls += 1
        self.last_query = query
        if self.error is not None:
            raise self.error
        return list(self.results)

    async def validate(self):
        return self.valid

    async def close(self):
        self.closed = True


@pytest.fixture
def provider_factory():
    """Factory fixture for FakeProvider objects."""
    return FakeProvider
