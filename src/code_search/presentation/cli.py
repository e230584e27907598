"""
Code Search CLI

Usage:
    code-search search "nftables limit rate" -p github -p sourcegraph --lang yaml
    code-search search "fn main" --regex -p sourcegraph --output markdown
    code-search validate
    code-search cache stats
    code-search cache clear --pattern "ab%"
    code-search stats --since 24
    code-search mcp

Results go to stdout, logs to stderr (or LOG_FILE). See ``code_search.settings``
for environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

from code_search.domain.entities import GITHUB, KNOWN_PROVIDERS, SearchFilters, SearchQuery
from code_search.presentation.formatters import get_formatter
from code_search.shared.exceptions import CodeSearchError, InvalidQueryError
from code_search.shared.logging_config import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from code_search.application.search import SearchEngine
    from code_search.container import ApplicationContainer

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


def _limit(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid limit: {value!r}") from None
    if not 1 <= n <= MAX_LIMIT:
        raise argparse.ArgumentTypeError(f"limit must be between 1 and {MAX_LIMIT}")
    return n


def build_parser(default_limit: int = 20) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code-search",
        description="Search GitHub and Sourcegraph code for agents and subagents",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ---- search ----
    search = sub.add_parser("search", help="Search for code examples")
    search.add_argument("query", help="Search text")
    search.add_argument(
        "-p", "--provider",
        action="append",
        default=[],
        help=f"Provider to use, repeatable ({', '.join(KNOWN_PROVIDERS)}; default: {GITHUB})",
    )
    search.add_argument("-l", "--lang", help="Filter by language")
    search.add_argument("-r", "--repo", help="Filter by repo (owner/repo)")
    search.add_argument("--org", help="Filter by organization")
    search.add_argument("--path", help="Filter by file path")
    search.add_argument("--filename", help="Filter by filename")
    search.add_argument("--extension", help="Filter by file extension")
    search.add_argument("--limit", type=_limit, default=min(default_limit, MAX_LIMIT), help="Max results (1-100)")
    search.add_argument("--output", choices=["json", "markdown"], default="json", help="Output format")
    search.add_argument("--regex", action="store_true", help="Regex matching (Sourcegraph only)")
    search.add_argument("--no-cache", action="store_true", help="Do not reuse a cached response for this query")

    # ---- validate ----
    sub.add_parser("validate", help="Check provider tokens and connectivity")

    # ---- cache ----
    cache = sub.add_parser("cache", help="Manage the response cache")
    cache_sub = cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("stats", help="Show cache statistics")
    clear = cache_sub.add_parser("clear", help="Clear cache entries")
    clear.add_argument("--pattern", help="SQL LIKE pattern over cache keys")

    # ---- stats ----
    stats = sub.add_parser("stats", help="Show per-provider request metrics")
    stats.add_argument("--since", type=float, default=24.0, help="Hours to look back (default: 24)")

    # ---- mcp ----
    sub.add_parser("mcp", help="Run the MCP server on stdio")

    return parser


def query_from_args(args: argparse.Namespace) -> SearchQuery:
    """Translate parsed ``search`` arguments into a SearchQuery."""
    text = args.query.strip()
    if not text:
        raise InvalidQueryError(args.query)
    return SearchQuery(
        text=text,
        providers=tuple(args.provider) or (GITHUB,),
        filters=SearchFilters(
            language=args.lang,
            repo=args.repo,
            org=args.org,
            path=args.path,
            filename=args.filename,
            extension=args.extension,
            use_regex=True if args.regex else None,
        ),
        limit=args.limit,
        cache_ttl=0 if args.no_cache else None,
    )


async def _search(engine: SearchEngine, query: SearchQuery) -> Any:
    try:
        return await engine.search(query)
    finally:
        await engine.close()


async def _validate(engine: SearchEngine) -> dict[str, bool]:
    try:
        return await engine.validate_providers()
    finally:
        await engine.close()


def run_command(args: argparse.Namespace, container: ApplicationContainer, out: TextIO) -> int:
    """Execute one parsed command. Returns the process exit code."""

    def write(text: str) -> None:
        out.write(text + "\n")

    if args.command == "search":
        query = query_from_args(args)
        formatter = get_formatter(args.output)
        response = asyncio.run(_search(container.engine(), query))
        write(formatter.format(response))
        return 0

    if args.command == "validate":
        results = asyncio.run(_validate(container.engine()))
        write(json.dumps(results, indent=2))
        return 0

    if args.command == "cache":
        cache = container.cache()
        if args.cache_command == "stats":
            write(json.dumps(cache.stats().to_dict(), indent=2))
        else:
            write(json.dumps({"deleted": cache.clear(args.pattern)}, indent=2))
        return 0

    if args.command == "stats":
        stats = container.metrics().stats(int(args.since * 3600))
        formatted = [
            {**s.to_dict(), "cache_hit_rate": f"{s.cache_hit_rate * 100:.1f}%"}
            for s in stats
        ]
        write(json.dumps(formatted, indent=2))
        return 0

    if args.command == "mcp":
        from code_search.presentation.mcp_server.server import create_server

        create_server(container=container).run()
        return 0

    msg = f"Unknown command: {args.command}"
    raise ValueError(msg)


def main(
    argv: Sequence[str] | None = None,
    *,
    container: ApplicationContainer | None = None,
    out: TextIO | None = None,
) -> int:
    """CLI entry point."""
    from code_search.container import ApplicationContainer
    from code_search.settings import Settings

    out = out or sys.stdout

    try:
        settings = Settings.from_env()
    except CodeSearchError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, settings.log_file)
    args = build_parser(settings.default_limit).parse_args(argv)

    if container is None:
        container = ApplicationContainer()
        container.config.from_dict(settings.as_config())

    try:
        return run_command(args, container, out)
    except CodeSearchError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
