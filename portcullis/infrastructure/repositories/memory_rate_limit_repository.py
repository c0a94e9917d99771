"""In-process fixed-window rate limit repository.

Used as the only store in in-memory-only mode, and per call as the fallback
when the durable store fails. State is never synchronized back to the durable
store, so an outage boundary or a restart may briefly under- or over-count.
"""

import threading
from typing import Dict

from portcullis.domain.rate_limiting.entities import RateLimitResult, WindowEntry
from portcullis.domain.rate_limiting.repositories import FixedWindowRepository
from portcullis.domain.rate_limiting.value_objects import RateLimitKey, RateLimitRule


class InMemoryFixedWindowRepository(FixedWindowRepository):
    """Fixed-window counters kept in a lock-guarded dict.

    A single event loop already serializes access, but route handlers may run
    in Starlette's threadpool, so read-modify-write sequences hold the lock.
    """

    def __init__(self):
        self._entries: Dict[str, WindowEntry] = {}
        self._lock = threading.Lock()

    def check(self, key: RateLimitKey, rule: RateLimitRule, now_ms: int) -> RateLimitResult:
        composite = key.composite_key
        with self._lock:
            entry = self._entries.get(composite)

            if entry is not None and entry.is_blocked(now_ms):
                return RateLimitResult(
                    allowed=False,
                    current_count=entry.count,
                    remaining=0,
                    reset_at_ms=entry.blocked_until,
                )

            if entry is None or entry.window_expired(now_ms, rule.window_ms):
                entry = WindowEntry(count=1, window_start=now_ms)
                self._entries[composite] = entry
                return RateLimitResult(
                    allowed=True,
                    current_count=1,
                    remaining=rule.max_requests - 1,
                    reset_at_ms=now_ms + rule.window_ms,
                )

            entry.count += 1
            window_end = entry.window_start + rule.window_ms

            if entry.count > rule.max_requests:
                if rule.block_duration_ms is not None:
                    entry.blocked_until = now_ms + rule.block_duration_ms
                return RateLimitResult(
                    allowed=False,
                    current_count=entry.count,
                    remaining=0,
                    reset_at_ms=entry.blocked_until or window_end,
                )

            return RateLimitResult(
                allowed=True,
                current_count=entry.count,
                remaining=rule.max_requests - entry.count,
                reset_at_ms=window_end,
            )

    def reset(self, key: RateLimitKey) -> None:
        with self._lock:
            self._entries.pop(key.composite_key, None)

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            expired = [k for k, entry in self._entries.items() if entry.is_expired(now_ms)]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
