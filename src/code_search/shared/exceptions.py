"""
Unified Exception Hierarchy for Code Search MCP.

Exception Hierarchy:
    CodeSearchError (base)
    ├── ProviderError            (carries provider id + FailureKind)
    ├── InfrastructureError
    │   ├── CacheError
    │   └── MetricsError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    └── ConfigurationError

Provider errors are recovered by the search engine and reported as data in
``SearchResponse.errors``. Infrastructure errors are swallowed and logged.
Only validation and configuration errors ever reach a caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """How bad an error is for the current operation."""
    WARNING = auto()      # Degraded, request continues
    ERROR = auto()        # Operation failed
    CRITICAL = auto()     # Process cannot start or continue
    TRANSIENT = auto()    # Temporary, caller may retry later


class ErrorCategory(Enum):
    """Which layer an error comes from."""
    PROVIDER = "provider"
    INFRASTRUCTURE = "infrastructure"
    VALIDATION = "validation"
    CONFIGURATION = "config"


class FailureKind(str, Enum):
    """Classification of a failed provider invocation."""
    RATE_LIMIT = "RATE_LIMIT"
    AUTH = "AUTH"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context for error messages."""
    tool_name: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    example: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CodeSearchError(Exception):
    """
    Base exception for all Code Search errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    - Agent-friendly formatting
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.PROVIDER,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation for tool output and logs."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.tool_name:
            result["tool"] = self.context.tool_name
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.example:
            result["example"] = self.context.example
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result

    def to_agent_message(self) -> str:
        """Markdown rendering for MCP tool responses."""
        parts = [f"**Error**: {self}"]

        if self.context.suggestion:
            parts.append(f"**Suggestion**: {self.context.suggestion}")
        if self.context.example:
            parts.append(f"**Example**: `{self.context.example}`")
        if self.retryable:
            if self.context.retry_after:
                parts.append(f"Retry after {self.context.retry_after:.1f} seconds")
            else:
                parts.append("This error is retryable")

        return "\n".join(parts)


# =============================================================================
# Provider Errors
# =============================================================================

_TRANSIENT_KINDS = {FailureKind.RATE_LIMIT, FailureKind.TIMEOUT}


class ProviderError(CodeSearchError):
    """
    Raised by a provider adapter when a search or lookup fails.

    ``kind`` is preserved verbatim by the search engine when it converts the
    exception into a ``ProviderFailure``.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        kind: FailureKind = FailureKind.UNKNOWN,
        *,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        transient = kind in _TRANSIENT_KINDS
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.TRANSIENT if transient else ErrorSeverity.ERROR,
            category=ErrorCategory.PROVIDER,
            retryable=transient,
        )
        self.provider = provider
        self.kind = FailureKind(kind)
        self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["provider"] = self.provider
        result["kind"] = self.kind.value
        return result


# =============================================================================
# Infrastructure Errors
# =============================================================================

class InfrastructureError(CodeSearchError):
    """Base class for cache / metrics storage failures."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.INFRASTRUCTURE,
            retryable=False,
        )


class CacheError(InfrastructureError):
    """Raised when the response cache cannot be read or written."""


class MetricsError(InfrastructureError):
    """Raised when the metrics store cannot be read or written."""


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(CodeSearchError):
    """Caller input that cannot be turned into a query."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when search query text is invalid."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Query cannot be empty",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = ErrorContext(
            tool_name=ctx.tool_name,
            operation=ctx.operation,
            input_value=query,
            suggestion=ctx.suggestion or "Provide a non-empty search query",
            example=ctx.example or 'search_code(q="nftables limit rate")',
            retry_after=ctx.retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(f"Invalid query: {reason}", context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext()
        ctx = ErrorContext(
            tool_name=ctx.tool_name,
            operation=ctx.operation,
            input_value=value,
            suggestion=f"Expected {expected}",
            example=ctx.example,
            retry_after=ctx.retry_after,
            metadata=ctx.metadata,
        )
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ctx,
        )


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(CodeSearchError):
    """Raised when environment configuration cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
