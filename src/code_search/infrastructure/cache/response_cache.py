"""
Response Cache

Durable SQLite cache of ``SearchResponse`` objects keyed by query hash.

Features:
- Expiry checked at read time (``expires_at > now``)
- Upsert on write (last write for a key wins)
- ``ttl_seconds <= 0`` stores an already-expired entry
- Optional SQL ``LIKE`` pattern for selective clearing

Expired rows are never swept proactively; they stay until the same key is
written again or the cache is cleared.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from code_search.domain.contracts import CacheStats
from code_search.domain.entities import SearchResponse
from code_search.infrastructure.storage import DEFAULT_DB_PATH, SqliteStore, now_epoch
from code_search.shared.exceptions import CacheError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class SqliteResponseCache(SqliteStore):
    """
    SQLite implementation of the ``CacheStore`` contract.

    Example:
        cache = SqliteResponseCache("~/.cache/codesearch/cache.db")
        cache.set(key, response, ttl_seconds=3600)
        cache.get(key)          # -> SearchResponse | None
        cache.clear("ab%")      # -> number of removed entries
    """

    _SCHEMA = """
    CREATE TABLE IF NOT EXISTS cache (
        key        TEXT PRIMARY KEY,
        value      TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        expires_at INTEGER NOT NULL
    );
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        try:
            super().__init__(db_path)
        except (sqlite3.Error, OSError) as e:
            msg = f"Cannot open cache database {db_path}: {e}"
            raise CacheError(msg) from e

    def get(self, key: str) -> SearchResponse | None:
        """
        Get a non-expired response.

        Returns:
            Cached response or None if absent/expired

        Raises:
            CacheError: On database or decoding failure
        """
        try:
            rows = self._query(
                "SELECT value FROM cache WHERE key = ? AND expires_at > ?",
                (key, now_epoch()),
            )
        except sqlite3.Error as e:
            msg = f"Cache read failed: {e}"
            raise CacheError(msg) from e

        if not rows:
            return None
        try:
            return SearchResponse.from_dict(json.loads(rows[0]["value"]))
        except (ValueError, KeyError, TypeError) as e:
            msg = f"Corrupt cache entry {key}: {e}"
            raise CacheError(msg) from e

    def set(self, key: str, value: SearchResponse, ttl_seconds: int) -> None:
        """Insert or replace the entry for ``key``."""
        now = now_epoch()
        try:
            self._execute(
                "INSERT OR REPLACE INTO cache (key, value, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (key, json.dumps(value.to_dict(), ensure_ascii=False), now, now + ttl_seconds),
            )
        except sqlite3.Error as e:
            msg = f"Cache write failed: {e}"
            raise CacheError(msg) from e

    def clear(self, pattern: str | None = None) -> int:
        """
        Remove entries.

        Args:
            pattern: SQL LIKE pattern over keys (e.g. ``"3f%"``); None clears all

        Returns:
            Number of entries removed
        """
        try:
            if pattern:
                removed = self._execute("DELETE FROM cache WHERE key LIKE ?", (pattern,))
            else:
                removed = self._execute("DELETE FROM cache")
        except sqlite3.Error as e:
            msg = f"Cache clear failed: {e}"
            raise CacheError(msg) from e
        logger.info(f"Cache cleared: {removed} entries (pattern={pattern!r})")
        return removed

    def stats(self) -> CacheStats:
        """Count, on-disk size and oldest creation time of live entries."""
        try:
            row = self._query(
                "SELECT COUNT(*) AS entries, MIN(created_at) AS oldest FROM cache WHERE expires_at > ?",
                (now_epoch(),),
            )[0]
            size_row = self._query(
                "SELECT page_count * page_size AS size FROM pragma_page_count(), pragma_page_size()"
            )[0]
        except sqlite3.Error as e:
            msg = f"Cache stats failed: {e}"
            raise CacheError(msg) from e

        oldest = row["oldest"]
        return CacheStats(
            entries=int(row["entries"]),
            size_bytes=int(size_row["size"] or 0),
            oldest_entry=datetime.fromtimestamp(oldest, tz=UTC) if oldest is not None else None,
        )
