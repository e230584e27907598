"""
Response formatters for the CLI and MCP tools.

- JsonFormatter: indented JSON of ``SearchResponse.to_dict()``
- MarkdownFormatter: compact table for humans and agents
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Protocol

from code_search.shared.exceptions import InvalidParameterError

if TYPE_CHECKING:
    from code_search.domain.entities import SearchResponse

SNIPPET_PREVIEW_CHARS = 60


class ResultFormatter(Protocol):
    def format(self, response: SearchResponse) -> str: ...


class JsonFormatter:
    def format(self, response: SearchResponse) -> str:
        return json.dumps(response.to_dict(), indent=2, ensure_ascii=False)


class MarkdownFormatter:
    """Heading, summary line, results table and an optional errors section."""

    def format(self, response: SearchResponse) -> str:
        summary = f"> {response.total} result(s) - {response.elapsed_ms}ms"
        if response.cached:
            summary += f" (cached, search: {response.search_elapsed_ms}ms)"

        lines = [
            f"## Search results for `{response.query.text}`",
            summary,
            "",
            "| Repo | Path | Lines | Stars | Provider | Snippet |",
            "|---|---|---|---|---|---|",
        ]

        for r in response.results:
            first_line = r.snippet.split("\n")[0] if r.snippet else ""
            snippet = first_line[:SNIPPET_PREVIEW_CHARS].replace("|", "\\|")
            lines.append(
                f"| [{r.repo}]({r.url}) | `{r.path}` | {r.lines[0]}-{r.lines[1]} "
                f"| {r.stars} | {r.provider} | `{snippet}` |"
            )

        if response.errors:
            lines.extend(["", "### Errors", ""])
            for e in response.errors:
                lines.append(f"- **{e.provider}** ({e.kind.value}): {e.message}")

        return "\n".join(lines)


_FORMATTERS: dict[str, type[JsonFormatter] | type[MarkdownFormatter]] = {
    "json": JsonFormatter,
    "markdown": MarkdownFormatter,
}


def get_formatter(name: str) -> ResultFormatter:
    """Formatter by name ("json" or "markdown")."""
    try:
        return _FORMATTERS[name.lower()]()
    except KeyError:
        raise InvalidParameterError("output", name, f"one of {sorted(_FORMATTERS)}") from None
