"""Account Lockout Domain Entities"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional

INACTIVE_ENTRY_TTL_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class LockoutPolicy:
    """Thresholds for temporarily locking an identity.

    Attributes:
        max_failed_attempts: Failures that trigger a lock.
        lockout_duration_ms: How long a lock lasts.
        failure_window_ms: Idle time after which the failure count restarts.
    """

    max_failed_attempts: int = 5
    lockout_duration_ms: int = 30 * 60 * 1000
    failure_window_ms: int = 15 * 60 * 1000

    def __post_init__(self):
        if self.max_failed_attempts <= 0:
            raise ValueError("max_failed_attempts must be positive")
        if self.lockout_duration_ms <= 0 or self.failure_window_ms <= 0:
            raise ValueError("Lockout durations must be positive")

    @property
    def entry_ttl_ms(self) -> int:
        """How long the durable store should keep an entry after a write."""
        return max(self.lockout_duration_ms, self.failure_window_ms)


@dataclass
class LockoutEntry:
    """Failure state for one identity.

    Invariants:
    - ``failed_attempts`` restarts at zero when the previous failure is older
      than the policy's failure window.
    - once ``failed_attempts`` reaches the threshold, ``locked_until`` is
      authoritative until it elapses; the entry is then reset lazily on the
      next read.
    """

    failed_attempts: int = 0
    last_failure_time: int = 0
    locked_until: Optional[int] = None

    def is_locked(self, now_ms: int) -> bool:
        return self.locked_until is not None and now_ms < self.locked_until

    def lock_elapsed(self, now_ms: int) -> bool:
        return self.locked_until is not None and now_ms >= self.locked_until

    def is_expired(self, now_ms: int) -> bool:
        if self.locked_until is not None:
            return now_ms > self.locked_until
        return now_ms - self.last_failure_time > INACTIVE_ENTRY_TTL_MS

    def to_mapping(self) -> Dict[str, str]:
        """Flatten to string fields for a store hash; an unset lock is omitted."""
        return {k: str(v) for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_mapping(cls, data: Dict[str, str]) -> LockoutEntry:
        """Rebuild from store hash fields. Raises ValueError on malformed data."""
        locked_until = data.get("locked_until")
        return cls(
            failed_attempts=int(data.get("failed_attempts", 0)),
            last_failure_time=int(data.get("last_failure_time", 0)),
            locked_until=int(locked_until) if locked_until not in (None, "") else None,
        )


@dataclass(frozen=True)
class LockStatus:
    locked: bool
    remaining_ms: Optional[int] = None
    locked_until: Optional[int] = None


@dataclass(frozen=True)
class FailureRecord:
    """Result of recording one failed authentication.

    ``attempts_remaining`` is set only while the identity is not locked;
    ``locked_until`` only once it is.
    """

    locked: bool
    locked_until: Optional[int] = None
    attempts_remaining: Optional[int] = None
