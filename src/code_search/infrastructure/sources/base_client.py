"""
Base API Client - Common HTTP request pattern for provider adapters.

Provides a reusable base class with:
- httpx.AsyncClient management (one pooled client per provider)
- Token-bucket rate limiting derived from the provider's capabilities
- A fixed per-request deadline covering the rate-limit wait and the request
- Failure classification into ``ProviderError`` kinds

There are no retries: each call is exactly one HTTP attempt. Failures are
raised, not swallowed, so the search engine can report them per provider.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from typing_extensions import Self

from code_search.shared.async_utils import RateLimiter
from code_search.shared.exceptions import FailureKind, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
VALIDATE_TIMEOUT = 5.0


def classify_status(status_code: int) -> FailureKind:
    """Map an HTTP error status to a failure kind."""
    if status_code in (401, 403):
        return FailureKind.AUTH
    if status_code == 429:
        return FailureKind.RATE_LIMIT
    if status_code in (408, 504):
        return FailureKind.TIMEOUT
    return FailureKind.UNKNOWN


class BaseAPIClient:
    """
    Base class for provider HTTP clients.

    Subclasses set ``name`` and can override:
    - ``_classify_response()``: service-specific status handling
      (e.g. GitHub reports rate limiting as 403)

    Example:
        class MyProvider(BaseAPIClient):
            name = "myapi"

            def __init__(self):
                super().__init__(base_url="https://api.example.com")

            async def lookup(self, item_id: str) -> dict:
                response = await self._request(f"/items/{item_id}")
                return self._json(response)
    """

    name: str = "api"

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize base client.

        Args:
            base_url: Base URL for the API (optional, can pass full URLs)
            timeout: Per-request deadline in seconds
            headers: Default headers for all requests
            rate_limiter: Optional limiter applied to rate-limited calls
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._rate_limiter = rate_limiter
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            transport=transport,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )

    def _build_url(self, url: str) -> str:
        """Build full URL from path or full URL."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    async def _request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        rate_limited: bool = True,
    ) -> httpx.Response:
        """
        Make one HTTP request.

        Args:
            url: Full URL or path (appended to base_url)
            method: HTTP method
            params: Query string parameters
            json: JSON body
            headers: Additional headers for this request
            timeout: Deadline override in seconds
            rate_limited: Whether to take a token from the rate limiter

        Returns:
            The successful (non-4xx/5xx) response

        Raises:
            ProviderError: Timeout, transport failure or error status
        """
        full_url = self._build_url(url)
        deadline = timeout if timeout is not None else self._timeout

        try:
            async with asyncio.timeout(deadline):
                if rate_limited and self._rate_limiter is not None:
                    await self._rate_limiter.acquire()
                response = await self._client.request(
                    method,
                    full_url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=deadline,
                )
        except (httpx.TimeoutException, TimeoutError) as e:
            msg = f"{self.name}: request timed out after {deadline:g}s"
            raise ProviderError(self.name, msg, FailureKind.TIMEOUT) from e
        except httpx.RequestError as e:
            msg = f"{self.name}: request failed: {e}"
            raise ProviderError(self.name, msg, FailureKind.UNKNOWN) from e

        if response.is_error:
            kind = self._classify_response(response)
            msg = f"{self.name}: HTTP {response.status_code} {response.reason_phrase}".rstrip()
            logger.debug(f"{msg} ({kind.value}) for {full_url}")
            raise ProviderError(self.name, msg, kind, status_code=response.status_code)

        return response

    def _classify_response(self, response: httpx.Response) -> FailureKind:
        """Classify an error response. Override for service quirks."""
        return classify_status(response.status_code)

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, reporting garbage as a provider failure."""
        try:
            return response.json()
        except ValueError as e:
            msg = f"{self.name}: invalid JSON response"
            raise ProviderError(self.name, msg, FailureKind.UNKNOWN) from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
