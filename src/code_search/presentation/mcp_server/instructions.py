"""
MCP Server Instructions - usage guide shown to AI agents.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
Code Search MCP Server - federated code search for agents

Tools:
- search_code: search GitHub (REST) and Sourcegraph (GraphQL) in one call.
  Results are de-duplicated by permalink and ranked by score * ln(stars + 1).
  Identical queries are served from cache.
- fetch_file: fetch the raw content of a result (use its raw_url field).
- cache_stats: cache size plus per-provider request counts, error counts,
  P50/P95/P99 latency and cache hit rate.
- cache_clear: drop cached responses (optionally by SQL LIKE key pattern).

Tips:
- Pass providers=["github", "sourcegraph"] to search both backends.
  A provider that is not configured is skipped silently.
- regex=true only has an effect on Sourcegraph.
- Check the "errors" list: a failing provider does not fail the search.

Example:
    search_code(q="nftables limit rate", providers=["github", "sourcegraph"], language="yaml", limit=5)
"""
