"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from code_search.domain.entities import ProviderFailure
from code_search.shared.exceptions import (
    CacheError,
    CodeSearchError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FailureKind,
    InfrastructureError,
    InvalidParameterError,
    InvalidQueryError,
    MetricsError,
    ProviderError,
    ValidationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        ("error", "parent"),
        [
            (ProviderError("github", "x"), CodeSearchError),
            (CacheError("x"), InfrastructureError),
            (MetricsError("x"), InfrastructureError),
            (InvalidQueryError(""), ValidationError),
            (InvalidParameterError("limit", 0, "positive"), ValidationError),
            (ConfigurationError("x"), CodeSearchError),
        ],
    )
    def test_parents(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, CodeSearchError)

    def test_categories(self):
        assert CacheError("x").category is ErrorCategory.INFRASTRUCTURE
        assert InvalidQueryError("").category is ErrorCategory.VALIDATION
        assert ConfigurationError("x").severity is ErrorSeverity.CRITICAL


class TestProviderError:
    @pytest.mark.parametrize(
        ("kind", "retryable"),
        [
            (FailureKind.RATE_LIMIT, True),
            (FailureKind.TIMEOUT, True),
            (FailureKind.AUTH, False),
            (FailureKind.UNKNOWN, False),
        ],
    )
    def test_retryable_by_kind(self, kind, retryable):
        error = ProviderError("github", "failed", kind)
        assert error.retryable is retryable
        assert error.kind is kind

    def test_accepts_kind_value(self):
        assert ProviderError("github", "x", "AUTH").kind is FailureKind.AUTH

    def test_to_dict(self):
        data = ProviderError("sourcegraph", "HTTP 429", FailureKind.RATE_LIMIT, status_code=429).to_dict()
        assert data["provider"] == "sourcegraph"
        assert data["kind"] == "RATE_LIMIT"
        assert data["category"] == "provider"
        assert data["retryable"] is True


class TestProviderFailure:
    def test_from_provider_error_keeps_kind(self):
        failure = ProviderFailure.from_exception("github", ProviderError("github", "timed out", FailureKind.TIMEOUT))
        assert failure == ProviderFailure("github", "timed out", FailureKind.TIMEOUT)

    def test_uses_registered_id(self):
        error = ProviderError("sourcegraph", "HTTP 500", FailureKind.UNKNOWN)
        failure = ProviderFailure.from_exception("sg-private", error)
        assert failure.provider == "sg-private"
        assert failure.message == "HTTP 500"

    def test_from_other_exception(self):
        failure = ProviderFailure.from_exception("sourcegraph", KeyError())
        assert failure.kind is FailureKind.UNKNOWN
        assert failure.message == "KeyError"


class TestAgentMessage:
    def test_includes_suggestion_and_example(self):
        message = InvalidQueryError("  ").to_agent_message()
        assert "**Error**: Invalid query" in message
        assert "**Suggestion**" in message
        assert "search_code(" in message

    def test_retry_after(self):
        error = ProviderError(
            "github", "rate limited", FailureKind.RATE_LIMIT, context=ErrorContext(retry_after=30.0)
        )
        assert "Retry after 30.0 seconds" in error.to_agent_message()
        assert error.to_dict()["retry_after_seconds"] == 30.0

    def test_invalid_parameter_message(self):
        error = InvalidParameterError("output", "xml", "one of ['json', 'markdown']")
        assert "Invalid parameter 'output'" in str(error)
        assert error.to_dict()["suggestion"].startswith("Expected")
