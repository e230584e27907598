"""Cross-layer helpers: exceptions, async utilities, logging setup."""

from .exceptions import (
    CacheError,
    CodeSearchError,
    ConfigurationError,
    FailureKind,
    InfrastructureError,
    InvalidParameterError,
    InvalidQueryError,
    MetricsError,
    ProviderError,
    ValidationError,
)

__all__ = [
    "CacheError",
    "CodeSearchError",
    "ConfigurationError",
    "FailureKind",
    "InfrastructureError",
    "InvalidParameterError",
    "InvalidQueryError",
    "MetricsError",
    "ProviderError",
    "ValidationError",
]
