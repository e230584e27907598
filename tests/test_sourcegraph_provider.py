"""
Tests for SourcegraphProvider - GraphQL code search adapter.
"""

from __future__ import annotations

import json

import httpx
import pytest

from code_search.domain.entities import SearchFilters, SearchQuery
from code_search.infrastructure.sources.sourcegraph import (
    SourcegraphProvider,
    build_sourcegraph_query,
    normalize_file_match,
)
from code_search.shared.exceptions import FailureKind, ProviderError


def _file_match(repo="github.com/acme/widgets", path="etc/nft.conf", stars=120, lines=(4, 9)):
    return {
        "__typename": "FileMatch",
        "repository": {"name": repo, "stars": stars},
        "file": {
            "path": path,
            "url": f"/{repo}/-/blob/{path}",
            "canonicalURL": f"/{repo}@abc123/-/blob/{path}",
        },
        "lineMatches": [{"lineNumber": n, "preview": f"line {n}"} for n in lines],
    }


def _payload(*nodes):
    return {"data": {"search": {"results": {"results": list(nodes), "limitHit": False}}}}


def _provider(handler, **kwargs):
    return SourcegraphProvider("https://sg.example.com", transport=httpx.MockTransport(handler), **kwargs)


class TestQueryBuilding:
    def test_filters(self):
        q = SearchQuery(
            text="limit rate",
            filters=SearchFilters(language="yaml", repo="acme/widgets", org="acme", path="etc/", filename="nft.conf"),
        )
        assert build_sourcegraph_query(q) == "limit rate lang:yaml repo:acme/widgets repo:acme/ file:etc/ file:nft.conf"

    def test_plain_text(self):
        assert build_sourcegraph_query(SearchQuery(text="fn main")) == "fn main"


class TestNormalizeFileMatch:
    def test_fields(self):
        result = normalize_file_match(_file_match(), "https://sourcegraph.com")
        assert result.url == "https://sourcegraph.com/github.com/acme/widgets@abc123/-/blob/etc/nft.conf"
        assert result.raw_url == "https://raw.githubusercontent.com/acme/widgets/HEAD/etc/nft.conf"
        assert result.repo == "acme/widgets"
        assert result.lines == (4, 9)
        assert result.snippet == "line 4\nline 9"
        assert result.language == "conf"
        assert result.stars == 120
        assert result.provider == "sourcegraph"
        assert result.score == 0.8

    def test_no_line_matches(self):
        match = _file_match()
        match["lineMatches"] = []
        match["repository"]["stars"] = None
        result = normalize_file_match(match, "https://sourcegraph.com")
        assert result.lines == (1, 1)
        assert result.snippet == ""
        assert result.stars == 0


class TestSearch:
    @pytest.mark.asyncio
    async def test_posts_graphql(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload(_file_match(), {"__typename": "Repository"}, _file_match(path="b")))

        provider = _provider(handler, token="sgp_test")
        try:
            results = await provider.search(SearchQuery(text="limit rate", providers=("sourcegraph",)))
        finally:
            await provider.close()

        assert [r.path for r in results] == ["etc/nft.conf", "b"]
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://sg.example.com/.api/graphql"
        assert request.headers["Authorization"] == "token sgp_test"
        body = json.loads(request.content)
        assert body["variables"] == {"query": "limit rate", "patternType": "literal"}

    @pytest.mark.asyncio
    async def test_regex_pattern_type(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=_payload())

        provider = _provider(handler)
        try:
            await provider.search(SearchQuery(text="fn\\s+main", filters={"regex": True}))
        finally:
            await provider.close()

        assert bodies[0]["variables"]["patternType"] == "regexp"

    @pytest.mark.asyncio
    async def test_truncates_to_limit(self):
        nodes = [_file_match(path=f"f{i}.py") for i in range(10)]
        provider = _provider(lambda request: httpx.Response(200, json=_payload(*nodes)))
        try:
            results = await provider.search(SearchQuery(text="x", limit=3))
        finally:
            await provider.close()
        assert [r.path for r in results] == ["f0.py", "f1.py", "f2.py"]

    @pytest.mark.asyncio
    async def test_anonymous_has_no_auth_header(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_payload())

        provider = _provider(handler)
        try:
            assert await provider.search(SearchQuery(text="x")) == []
        finally:
            await provider.close()
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_graphql_errors_without_data(self):
        payload = {"errors": [{"message": "invalid query"}]}
        provider = _provider(lambda request: httpx.Response(200, json=payload))
        try:
            with pytest.raises(ProviderError, match="invalid query") as exc_info:
                await provider.search(SearchQuery(text="x"))
        finally:
            await provider.close()
        assert exc_info.value.kind is FailureKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_partial_graphql_errors_keep_data(self):
        payload = _payload(_file_match())
        payload["errors"] = [{"message": "some repos timed out"}]
        provider = _provider(lambda request: httpx.Response(200, json=payload))
        try:
            results = await provider.search(SearchQuery(text="x"))
        finally:
            await provider.close()
        assert len(results) == 1

    @pytest.mark.parametrize(
        ("status", "kind"),
        [(401, FailureKind.AUTH), (429, FailureKind.RATE_LIMIT), (408, FailureKind.TIMEOUT), (502, FailureKind.UNKNOWN)],
    )
    @pytest.mark.asyncio
    async def test_http_errors(self, status, kind):
        provider = _provider(lambda request: httpx.Response(status))
        try:
            with pytest.raises(ProviderError) as exc_info:
                await provider.search(SearchQuery(text="x"))
        finally:
            await provider.close()
        assert exc_info.value.provider == "sourcegraph"
        assert exc_info.value.kind is kind


class TestValidate:
    @pytest.mark.asyncio
    async def test_reachable(self):
        provider = _provider(lambda request: httpx.Response(200, json={}))
        async with provider:
            assert await provider.validate() is True

    @pytest.mark.asyncio
    async def test_unreachable_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route to host", request=request)

        provider = _provider(handler)
        async with provider:
            assert await provider.validate() is False
