"""
Metrics Store

Append-only SQLite log of provider invocations, plus per-provider latency
percentiles and cache hit rates over a lookback window.

Percentiles use the nearest-rank method (no interpolation):
sort the samples ascending, take index ``ceil(n * p) - 1`` clamped to
``[0, n - 1]``. An empty sample set yields 0.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from collections.abc import Sequence
from typing import TYPE_CHECKING

from code_search.domain.contracts import MetricRecord, ProviderStats
from code_search.infrastructure.storage import DEFAULT_DB_PATH, SqliteStore, now_epoch
from code_search.shared.exceptions import MetricsError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_SECONDS = 86400


def percentile(sorted_samples: Sequence[int], p: float) -> int:
    """
    Nearest-rank percentile of an ascending sample list.

    >>> percentile([10, 20, 30, 40], 0.5)
    20
    >>> percentile([], 0.95)
    0
    """
    if not sorted_samples:
        return 0
    n = len(sorted_samples)
    idx = math.ceil(n * p) - 1
    return sorted_samples[max(0, min(idx, n - 1))]


class SqliteMetricsStore(SqliteStore):
    """
    SQLite implementation of the ``MetricsSink`` contract.

    Rows are immutable once written. Stats are computed on read.
    """

    _SCHEMA = """
    CREATE TABLE IF NOT EXISTS metrics (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        ts         INTEGER NOT NULL,
        provider   TEXT NOT NULL,
        query      TEXT,
        cache_hit  INTEGER NOT NULL,
        results    INTEGER,
        elapsed_ms INTEGER,
        error      TEXT
    );
    CREATE INDEX IF NOT EXISTS idx_metrics_ts ON metrics(ts);
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        try:
            super().__init__(db_path)
        except (sqlite3.Error, OSError) as e:
            msg = f"Cannot open metrics database {db_path}: {e}"
            raise MetricsError(msg) from e

    def record(self, entry: MetricRecord) -> None:
        """Append one row stamped with the current time."""
        try:
            self._execute(
                "INSERT INTO metrics (ts, provider, query, cache_hit, results, elapsed_ms, error) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    now_epoch(),
                    entry.provider,
                    entry.query,
                    1 if entry.cache_hit else 0,
                    entry.results,
                    entry.elapsed_ms,
                    entry.error,
                ),
            )
        except sqlite3.Error as e:
            msg = f"Metrics write failed: {e}"
            raise MetricsError(msg) from e

    def stats(self, since_seconds: int = DEFAULT_LOOKBACK_SECONDS) -> list[ProviderStats]:
        """
        Per-provider summary of rows newer than ``now - since_seconds``.

        Returns:
            One ``ProviderStats`` per provider, ordered by provider id
        """
        since = now_epoch() - since_seconds
        try:
            rows = self._query(
                "SELECT provider, cache_hit, elapsed_ms, error FROM metrics WHERE ts >= ? ORDER BY provider",
                (since,),
            )
        except sqlite3.Error as e:
            msg = f"Metrics read failed: {e}"
            raise MetricsError(msg) from e

        grouped: dict[str, list[sqlite3.Row]] = {}
        for row in rows:
            grouped.setdefault(row["provider"], []).append(row)

        return [self._summarize(provider, provider_rows) for provider, provider_rows in grouped.items()]

    @staticmethod
    def _summarize(provider: str, rows: list[sqlite3.Row]) -> ProviderStats:
        requests = len(rows)
        errors = sum(1 for r in rows if r["error"] is not None)
        hits = sum(1 for r in rows if r["cache_hit"])
        latencies = sorted(int(r["elapsed_ms"]) for r in rows if r["elapsed_ms"] is not None)
        return ProviderStats(
            provider=provider,
            requests=requests,
            errors=errors,
            p50=percentile(latencies, 0.50),
            p95=percentile(latencies, 0.95),
            p99=percentile(latencies, 0.99),
            cache_hit_rate=hits / requests if requests else 0.0,
        )
