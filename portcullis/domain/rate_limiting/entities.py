"""Rate Limiting Domain Entities

Entities:
- WindowEntry: Mutable per-key state of the in-process fixed-window counter
- RateLimitResult: Result of a single rate limiting check
- RateLimitDecision: Result of a named-rule check, with a ready HTTP response
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from starlette.responses import JSONResponse

# In-memory entries with no block are dropped after this much inactivity
INACTIVE_ENTRY_TTL_MS = 24 * 60 * 60 * 1000


@dataclass
class WindowEntry:
    """Per-key counter state for the fixed-window fallback.

    Lifecycle:
    - created on the first request for a key
    - reset when ``now - window_start > window_ms`` (and no block is active)
    - ``blocked_until`` set when the count exceeds the rule's maximum and the
      rule has a block duration
    - eligible for removal once its block has elapsed, or after 24h of
      inactivity when it was never blocked
    """

    count: int
    window_start: int
    blocked_until: Optional[int] = None

    def is_blocked(self, now_ms: int) -> bool:
        return self.blocked_until is not None and now_ms < self.blocked_until

    def window_expired(self, now_ms: int, window_ms: int) -> bool:
        return now_ms - self.window_start > window_ms

    def is_expired(self, now_ms: int) -> bool:
        if self.blocked_until is not None:
            return now_ms > self.blocked_until
        return now_ms - self.window_start > INACTIVE_ENTRY_TTL_MS


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        current_count: Requests counted in the window, including this one.
        remaining: Requests still allowed in the window, never negative.
        reset_at_ms: When the window (or block) ends, epoch milliseconds.
        degraded: True when the durable store failed and the in-process
            fallback produced this decision.
    """

    allowed: bool
    current_count: int
    remaining: int
    reset_at_ms: int
    degraded: bool = False

    def retry_after_seconds(self, now_ms: int) -> int:
        """Seconds until the limit resets, rounded up, never negative."""
        return max(0, math.ceil((self.reset_at_ms - now_ms) / 1000))


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a named-rule check at an HTTP entry point.

    ``response`` is a complete 429 response when ``limited`` is true and
    ``None`` otherwise.
    """

    limited: bool
    result: RateLimitResult
    response: Optional["JSONResponse"] = None
