"""
SQLite connection handling shared by the response cache and the metrics store.

Both stores live in one database file (default ``~/.cache/codesearch/cache.db``)
but each opens its own connection and owns its own table.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".cache" / "codesearch" / "cache.db"


def now_epoch() -> int:
    """Current time in whole epoch seconds."""
    return int(time.time())


class SqliteStore:
    """
    Base class for a table-owning SQLite store.

    The connection is shared across threads (``check_same_thread=False``)
    and every statement runs under ``self._lock``.

    Subclasses set ``_SCHEMA`` and use ``_execute`` / ``_query``.
    """

    _SCHEMA: str = ""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path).expanduser()
        self._lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = self._connect()
        logger.debug(f"{type(self).__name__} opened: {self._db_path}")

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False, timeout=5.0)
        conn.row_factory = sqlite3.Row
        if self._SCHEMA:
            conn.executescript(self._SCHEMA)
        conn.commit()
        return conn

    def _execute(self, sql: str, params: tuple[object, ...] = ()) -> int:
        """Run a write statement and commit. Returns affected row count."""
        with self._lock:
            cur = self._conn.execute(sql, params)
            self._conn.commit()
            return cur.rowcount

    def _query(self, sql: str, params: tuple[object, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
