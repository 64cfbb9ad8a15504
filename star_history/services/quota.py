"""Process-wide request budget shared by every fetch of one invocation."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from star_history.crawlers.github.contracts import RateLimitStatus, StarSource
from star_history.errors import QuotaExhausted, SourceUnavailable
from star_history.services.retry import RetryPolicy
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QuotaGovernor:
    """Reserve-before-call, observe-after-call gate over the source's rate limit.

    ``reserve`` is serialized by a single lock, so concurrent workers cannot
    overdraw the projected budget. The wait for a reset is the only blocking
    point of a run and is an ordinary cancellable ``await``.
    """

    def __init__(
        self,
        *,
        blocking: bool = True,
        max_wait_seconds: float = 3600.0,
        reset_buffer_seconds: float = 1.0,
        max_in_flight: int = 5,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self.blocking = blocking
        self.max_wait_seconds = max_wait_seconds
        self.reset_buffer_seconds = reset_buffer_seconds
        self._clock = clock or _utcnow
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self._in_flight = asyncio.Semaphore(max(int(max_in_flight), 1))
        self._remaining: Optional[int] = None
        self._reset_at: Optional[datetime] = None
        self._outstanding = 0
        self.waits = 0

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def reset_at(self) -> Optional[datetime]:
        return self._reset_at

    @property
    def outstanding(self) -> int:
        """Units reserved by calls that have not reached the source's report yet."""
        return self._outstanding

    def observe(self, status: Optional[RateLimitStatus]) -> None:
        """Adopt the source's self-reported budget, less reservations still in flight."""
        if status is None:
            return
        self._remaining = max(status.remaining - self._outstanding, 0)
        self._reset_at = status.reset_at

    def mark_exhausted(self, reset_at: Optional[datetime]) -> None:
        self._remaining = 0
        if reset_at is not None:
            self._reset_at = reset_at

    async def reserve(self, cost: int = 1, *, target: Optional[str] = None) -> None:
        """
        Admit a request of ``cost`` units or wait until the budget resets

        Every admitted reservation stays outstanding until ``release`` is
        called for it; ``call`` does that once the source has answered.

        Raises:
            QuotaExhausted: in non-blocking mode, or when the reset is further
                away than ``max_wait_seconds``
        """
        async with self._lock:
            if self._remaining is not None and self._remaining - cost < 0:
                await self._wait_for_reset(target)
            if self._remaining is not None:
                self._remaining -= cost
            self._outstanding += cost

    def release(self, cost: int = 1) -> None:
        self._outstanding = max(self._outstanding - cost, 0)

    async def _wait_for_reset(self, target: Optional[str]) -> None:
        if self._reset_at is None:
            # nothing to wait for; let the source decide
            self._remaining = None
            return

        wait_seconds = (self._reset_at - self._clock()).total_seconds()
        if wait_seconds <= 0:
            self._remaining = None
            return

        wait_seconds += self.reset_buffer_seconds
        if not self.blocking:
            raise QuotaExhausted(
                f"rate limit exhausted until {self._reset_at.isoformat()}",
                target=target,
                reset_at=self._reset_at,
            )
        if wait_seconds > self.max_wait_seconds:
            raise QuotaExhausted(
                f"rate limit resets in {wait_seconds:.0f}s, beyond the {self.max_wait_seconds:.0f}s wait limit",
                target=target,
                reset_at=self._reset_at,
            )

        logger.warning(
            "Rate limit exhausted, waiting for reset",
            extra=sanitize_log_extra(target=target, wait_seconds=round(wait_seconds, 1), reset_at=self._reset_at.isoformat()),
        )
        await self._sleep(wait_seconds)
        self.waits += 1
        self._remaining = None
        self._reset_at = None

    async def call(
        self,
        source: StarSource,
        operation: Callable[[], Awaitable[T]],
        *,
        target: str,
        retry: Optional[RetryPolicy] = None,
        cost: int = 1,
    ) -> T:
        """Run one source call under the governor, retrying transient failures."""
        policy = retry or RetryPolicy()
        attempt = 0
        while True:
            attempt += 1
            await self.reserve(cost, target=target)
            try:
                result = await self._invoke(operation, cost)
            except QuotaExhausted as exc:
                self.observe(source.rate_limit_status())
                self.mark_exhausted(exc.reset_at)
                if attempt >= policy.max_attempts:
                    raise
                if exc.reset_at is None:
                    # no reset time to wait for; back off instead
                    await self._backoff(policy, attempt, target, exc)
                continue
            except SourceUnavailable as exc:
                self.observe(source.rate_limit_status())
                if not exc.retryable or attempt >= policy.max_attempts:
                    raise
                await self._backoff(policy, attempt, target, exc)
                continue

            self.observe(source.rate_limit_status())
            return result

    async def _invoke(self, operation: Callable[[], Awaitable[T]], cost: int) -> T:
        try:
            async with self._in_flight:
                return await operation()
        finally:
            self.release(cost)

    async def _backoff(self, policy: RetryPolicy, attempt: int, target: str, exc: Exception) -> None:
        delay = policy.delay_seconds(attempt)
        logger.warning(
            "Source call failed, retrying",
            extra=sanitize_log_extra(target=target, attempt=attempt, delay_seconds=round(delay, 3), error=str(exc)),
        )
        await self._sleep(delay)
