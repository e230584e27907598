"""
Async Utilities for provider fan-out.

Python 3.12+ features used:
- asyncio.TaskGroup for structured concurrency (3.11+)
- Type parameter syntax for generic functions

Provides:
- Settled fan-out (wait for every coroutine, never cancel siblings)
- Rate limiting with token bucket
- Fire-and-forget side effects with a logged, inspectable outcome
- Monotonic elapsed-time helper
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Rate Limiter (Token Bucket Algorithm)
# =============================================================================

@dataclass
class RateLimiter:
    """
    Token bucket rate limiter for API calls.

    GitHub code search allows 30 requests/minute for authenticated users,
    the public Sourcegraph instance considerably more.

    Example:
        limiter = RateLimiter(rate=30, per=60.0)
        async with limiter:
            await make_api_call()
    """
    rate: float = 10.0  # requests per period
    per: float = 1.0    # period in seconds
    _tokens: float = field(init=False)
    _last_update: float = field(init=False)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        self._tokens = self.rate
        self._last_update = time.monotonic()

    async def acquire(self) -> None:
        """Acquire a token, waiting if necessary."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_update
            self._tokens = min(self.rate, self._tokens + elapsed * (self.rate / self.per))
            self._last_update = now

            if self._tokens < 1:
                wait_time = (1 - self._tokens) * (self.per / self.rate)
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
                self._tokens = 0
                self._last_update = time.monotonic()
            else:
                self._tokens -= 1

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


# =============================================================================
# Settled fan-out
# =============================================================================

@dataclass(frozen=True, slots=True)
class Settled(Generic[T]):
    """Outcome of one coroutine in a settled fan-out."""
    value: T | None = None
    error: BaseException | None = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    *coros: Awaitable[T],
    started_at: float | None = None,
) -> list[Settled[T]]:
    """
    Run coroutines concurrently and wait for all of them to settle.

    Unlike ``asyncio.TaskGroup`` used directly, a failing coroutine never
    cancels its siblings. Results come back in argument order, whatever
    the completion order was.

    Args:
        *coros: Coroutines to execute
        started_at: ``time.monotonic()`` origin for ``elapsed_ms``.
            Defaults to the moment this function is called.

    Returns:
        One ``Settled`` per coroutine, in the order given.

    Example:
        outcomes = await gather_settled(github.search(q), sourcegraph.search(q))
        for outcome in outcomes:
            if outcome.ok:
                ...
    """
    origin = time.monotonic() if started_at is None else started_at
    slots: list[Settled[T] | None] = [None] * len(coros)

    async def settle(index: int, coro: Awaitable[T]) -> None:
        try:
            value = await coro
        except Exception as e:
            slots[index] = Settled(error=e, elapsed_ms=elapsed_ms(origin))
        else:
            slots[index] = Settled(value=value, elapsed_ms=elapsed_ms(origin))

    async with asyncio.TaskGroup() as tg:
        for i, coro in enumerate(coros):
            tg.create_task(settle(i, coro))

    return [slot for slot in slots if slot is not None]


# =============================================================================
# Best-effort side effects
# =============================================================================

@dataclass(frozen=True, slots=True)
class SideEffectResult:
    """
    Outcome of a fire-and-forget operation.

    Only ever inspected for logging; callers must not branch on it.
    """
    operation: str
    ok: bool
    error: Exception | None = None


def best_effort(operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> SideEffectResult:
    """
    Call ``func`` and turn any exception into a logged ``SideEffectResult``.

    Example:
        best_effort("cache.set", cache.set, key, response, ttl)
    """
    try:
        func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"{operation} failed (ignored): {e}")
        return SideEffectResult(operation=operation, ok=False, error=e)
    return SideEffectResult(operation=operation, ok=True)


# =============================================================================
# Utility Functions
# =============================================================================

def elapsed_ms(started_at: float) -> int:
    """Whole milliseconds since a ``time.monotonic()`` reading."""
    return int((time.monotonic() - started_at) * 1000)
