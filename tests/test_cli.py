"""Tests for the code-search CLI."""

from __future__ import annotations

import argparse
import io
import json
from unittest.mock import MagicMock, patch

import pytest
from dependency_injector import providers

from code_search.container import ApplicationContainer
from code_search.domain.contracts import MetricRecord
from code_search.presentation.cli import build_parser, main, query_from_args
from code_search.settings import Settings
from code_search.shared.exceptions import FailureKind, InvalidQueryError, ProviderError


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch):
    for name in ("CODESEARCH_DEFAULT_LIMIT", "CODESEARCH_CACHE_TTL", "LOG_FILE", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    with patch("code_search.presentation.cli.setup_logging"):
        yield


@pytest.fixture
def container(db_path, provider_factory, result_factory):
    c = ApplicationContainer()
    c.config.from_dict(Settings(cache_path=str(db_path)).as_config())
    c.search_providers.override(
        providers.Object(
            {
                "github": provider_factory("github", [result_factory("a", stars=100)]),
                "sourcegraph": provider_factory(
                    "sourcegraph",
                    error=ProviderError("sourcegraph", "HTTP 429", FailureKind.RATE_LIMIT),
                    valid=False,
                ),
            }
        )
    )
    return c


def _run(argv, container):
    out = io.StringIO()
    code = main(argv, container=container, out=out)
    return code, out.getvalue()


class TestParser:
    def test_search_defaults(self):
        args = build_parser().parse_args(["search", "fn main"])
        query = query_from_args(args)
        assert query.text == "fn main"
        assert query.providers == ("github",)
        assert query.limit == 20
        assert query.filters.is_empty()
        assert query.cache_ttl is None

    def test_search_options(self):
        args = build_parser().parse_args(
            ["search", "x", "-p", "sourcegraph", "-p", "github", "-l", "rust", "-r", "a/b", "--regex", "--no-cache", "--limit", "7"]
        )
        query = query_from_args(args)
        assert query.providers == ("sourcegraph", "github")
        assert query.filters.language == "rust"
        assert query.filters.repo == "a/b"
        assert query.filters.use_regex is True
        assert query.cache_ttl == 0
        assert query.limit == 7

    @pytest.mark.parametrize("limit", ["0", "101", "ten"])
    def test_limit_bounds(self, limit):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["search", "x", "--limit", limit])
        assert exc_info.value.code == 2

    def test_empty_query(self):
        args = argparse.Namespace(
            query="   ", provider=[], lang=None, repo=None, org=None, path=None,
            filename=None, extension=None, regex=False, limit=5, no_cache=False,
        )
        with pytest.raises(InvalidQueryError):
            query_from_args(args)


class TestCommands:
    def test_search_json(self, container):
        code, out = _run(["search", "limit rate", "-p", "github", "-p", "sourcegraph"], container)

        assert code == 0
        data = json.loads(out)
        assert data["total"] == 1
        assert data["cached"] is False
        assert data["errors"] == [{"provider": "sourcegraph", "message": "HTTP 429", "kind": "RATE_LIMIT"}]

    def test_search_markdown(self, container):
        code, out = _run(["search", "limit rate", "--output", "markdown"], container)
        assert code == 0
        assert out.startswith("## Search results for `limit rate`")

    def test_second_search_cached(self, container):
        _run(["search", "x"], container)
        _, out = _run(["search", "x"], container)
        assert json.loads(out)["cached"] is True

    def test_empty_query_exit_code(self, container):
        code, out = _run(["search", "  "], container)
        assert code == 1
        assert out == ""

    def test_validate(self, container):
        code, out = _run(["validate"], container)
        assert code == 0
        assert json.loads(out) == {"github": True, "sourcegraph": False}

    def test_cache_stats_and_clear(self, container):
        _run(["search", "x"], container)

        _, stats = _run(["cache", "stats"], container)
        assert json.loads(stats)["entries"] == 1

        _, cleared = _run(["cache", "clear"], container)
        assert json.loads(cleared) == {"deleted": 1}

    def test_stats_hit_rate_as_percentage(self, container):
        metrics = container.metrics()
        metrics.record(MetricRecord(provider="github", cache_hit=True, elapsed_ms=0))
        metrics.record(MetricRecord(provider="github", cache_hit=False, elapsed_ms=80))

        code, out = _run(["stats", "--since", "1"], container)

        assert code == 0
        assert json.loads(out)[0]["cache_hit_rate"] == "50.0%"

    def test_mcp_starts_server(self, container):
        server = MagicMock()
        with patch("code_search.presentation.mcp_server.server.create_server", return_value=server) as create:
            code, _ = _run(["mcp"], container)
        assert code == 0
        create.assert_called_once_with(container=container)
        server.run.assert_called_once()


class TestConfiguration:
    def test_bad_env_value(self, monkeypatch, capsys):
        monkeypatch.setenv("CODESEARCH_CACHE_TTL", "forever")
        assert main(["validate"]) == 1
        assert "CODESEARCH_CACHE_TTL" in capsys.readouterr().err

    def test_missing_command(self, container):
        with pytest.raises(SystemExit) as exc_info:
            main([], container=container)
        assert exc_info.value.code == 2
