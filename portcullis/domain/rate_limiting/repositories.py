"""
Rate Limiting Domain Repositories

Repository interfaces defining the storage contracts of the rate limiting
domain. The limiter depends on these abstractions and receives concrete
implementations by injection, so tests can substitute fakes.

Repositories:
- SlidingWindowRepository: Durable, distributed sliding-window counter
- FixedWindowRepository: Process-local fixed-window counter used as fallback

Error contract:
- Durable implementations raise ``portcullis.core.exceptions.StoreError``
  (or a subclass) for every infrastructure failure and never return a
  partial result.
- Fixed-window implementations are process-local and do not raise
  ``StoreError``.
"""

from abc import ABC, abstractmethod

from .entities import RateLimitResult
from .value_objects import RateLimitKey, RateLimitRule


class SlidingWindowRepository(ABC):
    """
    Repository interface for the durable sliding-window counter.

    One call to ``hit`` must run as a single atomic unit against the store:
    trim entries older than ``now_ms - window_ms``, record this request under
    a unique member, count what remains, and refresh the key's expiry to the
    window length. Concurrent callers for the same key are linearized by the
    store, so two requests can never both observe the last free slot.
    """

    @abstractmethod
    async def hit(self, key: RateLimitKey, window_ms: int, now_ms: int) -> int:
        """
        Record one request and return the number of requests in the window.

        Args:
            key: The counter to update.
            window_ms: Sliding window length.
            now_ms: Current time in epoch milliseconds.

        Returns:
            The request count in the window, including this request.

        Raises:
            StoreError: When the atomic unit fails or times out.
        """

    @abstractmethod
    async def reset(self, key: RateLimitKey) -> None:
        """
        Drop all recorded requests for a key.

        Raises:
            StoreError: When the store cannot be reached.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store answers, False otherwise."""


class FixedWindowRepository(ABC):
    """
    Repository interface for the in-process fixed-window counter.

    The fallback is intentionally cheaper than the sliding window: a window
    starts at the first request for a key and resets a full quota once it has
    elapsed, so bursts straddling a boundary may be counted twice. That is an
    accepted approximation for a degraded mode.
    """

    @abstractmethod
    def check(self, key: RateLimitKey, rule: RateLimitRule, now_ms: int) -> RateLimitResult:
        """
        Count one request against ``rule`` and return the decision.

        Args:
            key: The counter to update.
            rule: The rule to enforce, including its optional block duration.
            now_ms: Current time in epoch milliseconds.
        """

    @abstractmethod
    def reset(self, key: RateLimitKey) -> None:
        """Forget the counter for ``key``."""

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """
        Remove entries whose block has elapsed or that have been idle for 24h.

        Returns:
            Number of entries removed.
        """

    @abstractmethod
    def __len__(self) -> int:
        """Number of tracked keys."""
