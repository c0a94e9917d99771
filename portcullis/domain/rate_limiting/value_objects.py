"""
Rate Limiting Value Objects

Immutable value objects representing core concepts in the rate limiting domain.

Value Objects:
- RateLimitRule: Window length, request ceiling and optional block duration
- RateLimitKey: Unique identification of a counter (scope, rule, identifier)
- IdentifierType: Whether a counter is keyed by client IP or by user id

Design Principles:
- Immutability: All value objects are frozen after creation
- Validation: Business rules enforced at construction time
- Equality: Value-based equality for proper hashing and comparison
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class IdentifierType(str, Enum):
    """What a rate limit identifier refers to.

    IP-based and user-based checks for the same logical action use separate
    keys, so a request must pass both independently.
    """
    IP = "ip"
    USER = "user"


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    """
    Static limit for one logical action.

    Attributes:
        name: Rule name, part of every counter key (e.g. ``LOGIN``).
        window_ms: Length of the counting window.
        max_requests: Requests allowed per window.
        block_duration_ms: How long the in-memory fallback keeps a key
            blocked after it exceeds the limit. ``None`` disables blocking.
    """
    name: str
    window_ms: int
    max_requests: int
    block_duration_ms: Optional[int] = None

    def __post_init__(self):
        if not self.name or ":" in self.name:
            raise ValueError("Rule name must be non-empty and must not contain ':'")
        if self.window_ms <= 0:
            raise ValueError("Rate limit window must be positive")
        if self.max_requests <= 0:
            raise ValueError("Max requests must be positive")
        if self.block_duration_ms is not None and self.block_duration_ms <= 0:
            raise ValueError("Block duration must be positive when set")

    @property
    def window_seconds(self) -> int:
        """Window length rounded up to whole seconds, used as the store TTL."""
        return math.ceil(self.window_ms / 1000)

    def with_overrides(
        self,
        window_ms: Optional[int] = None,
        max_requests: Optional[int] = None,
        block_duration_ms: Optional[int] = None,
    ) -> RateLimitRule:
        """Return a copy with the given fields replaced."""
        changes = {}
        if window_ms is not None:
            changes["window_ms"] = window_ms
        if max_requests is not None:
            changes["max_requests"] = max_requests
        if block_duration_ms is not None:
            changes["block_duration_ms"] = block_duration_ms
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class RateLimitKey:
    """
    Immutable value object naming one counter.

    The composite form ``{scope}:{rule}:{identifier}`` is used verbatim as the
    durable store key, so keys in different scopes or rules never collide.
    """
    scope: str
    rule_name: str
    identifier: str

    def __post_init__(self):
        if not self.scope:
            raise ValueError("Rate limit scope must be provided")
        if not self.rule_name:
            raise ValueError("Rate limit rule name must be provided")

    @property
    def composite_key(self) -> str:
        identifier = self.identifier or "unknown"
        return f"{self.scope}:{self.rule_name}:{identifier}"

    def __str__(self) -> str:
        return self.composite_key
