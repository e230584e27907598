"""Response cache implementations."""

from .response_cache import SqliteResponseCache

__all__ = ["SqliteResponseCache"]
