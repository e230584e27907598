"""
Logging setup shared by the CLI and the MCP server.

stdout carries search results (CLI) or the MCP stdio protocol, so log
records always go to stderr or to a file.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = "INFO", log_file: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name ("DEBUG", "info", ...) or numeric level
        log_file: Optional path; when given, records are appended there
            instead of stderr
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
