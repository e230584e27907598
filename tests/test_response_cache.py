"""Tests for the SQLite response cache."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from code_search.domain.entities import ProviderFailure, SearchQuery, SearchResponse
from code_search.infrastructure.cache import SqliteResponseCache
from code_search.shared.exceptions import CacheError, FailureKind


@pytest.fixture
def response(result_factory):
    return SearchResponse(
        query=SearchQuery(text="fn main", providers=("github", "sourcegraph"), filters={"language": "rust"}),
        results=[result_factory("a", stars=5), result_factory("b", provider="sourcegraph", score=0.8)],
        elapsed_ms=42,
        errors=[ProviderFailure("gitlab", "not reachable", FailureKind.TIMEOUT)],
    )


class TestGetSet:
    def test_miss_on_empty_cache(self, response_cache):
        assert response_cache.get("nope") is None

    def test_roundtrip(self, response_cache, response):
        response_cache.set("k1", response, ttl_seconds=60)
        assert response_cache.get("k1") == response

    def test_last_write_wins(self, response_cache, response):
        response_cache.set("k1", response, ttl_seconds=60)
        newer = SearchResponse(query=response.query, elapsed_ms=7)
        response_cache.set("k1", newer, ttl_seconds=60)

        assert response_cache.get("k1") == newer
        assert response_cache.stats().entries == 1

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_is_expired(self, response_cache, response, ttl):
        response_cache.set("k1", response, ttl_seconds=ttl)
        assert response_cache.get("k1") is None

    def test_expiry_checked_at_read_time(self, response_cache, response):
        with patch("code_search.infrastructure.cache.response_cache.now_epoch", return_value=1_000):
            response_cache.set("k1", response, ttl_seconds=10)
        with patch("code_search.infrastructure.cache.response_cache.now_epoch", return_value=1_009):
            assert response_cache.get("k1") == response
        with patch("code_search.infrastructure.cache.response_cache.now_epoch", return_value=1_010):
            assert response_cache.get("k1") is None

    def test_persists_across_instances(self, db_path, response):
        first = SqliteResponseCache(db_path)
        first.set("k1", response, ttl_seconds=60)
        first.close()

        second = SqliteResponseCache(db_path)
        try:
            assert second.get("k1") == response
        finally:
            second.close()

    def test_corrupt_entry_raises_cache_error(self, response_cache):
        response_cache._execute(
            "INSERT INTO cache (key, value, created_at, expires_at) VALUES (?, ?, ?, ?)",
            ("bad", "{not json", 0, 2**40),
        )
        with pytest.raises(CacheError):
            response_cache.get("bad")


class TestClear:
    def test_clear_all(self, response_cache, response):
        for key in ("aa1", "aa2", "bb1"):
            response_cache.set(key, response, ttl_seconds=60)
        assert response_cache.clear() == 3
        assert response_cache.stats().entries == 0

    def test_clear_like_pattern(self, response_cache, response):
        for key in ("aa1", "aa2", "bb1"):
            response_cache.set(key, response, ttl_seconds=60)

        assert response_cache.clear("aa%") == 2
        assert response_cache.get("bb1") == response
        assert response_cache.get("aa1") is None


class TestStats:
    def test_empty(self, response_cache):
        stats = response_cache.stats()
        assert stats.entries == 0
        assert stats.oldest_entry is None
        assert stats.size_bytes > 0

    def test_counts_only_live_entries(self, response_cache, response):
        response_cache.set("live", response, ttl_seconds=60)
        response_cache.set("dead", response, ttl_seconds=0)

        stats = response_cache.stats()

        assert stats.entries == 1
        assert stats.oldest_entry is not None
        assert stats.to_dict()["oldest_entry"].endswith("+00:00")


class TestErrors:
    def test_unopenable_path(self, temp_dir):
        # The parent "directory" is a regular file
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with pytest.raises(CacheError):
            SqliteResponseCache(blocker / "cache.db")

    def test_sqlite_error_wrapped(self, response_cache):
        with patch.object(response_cache, "_query", side_effect=sqlite3.OperationalError("disk I/O error")):
            with pytest.raises(CacheError, match="Cache read failed"):
                response_cache.get("k")
