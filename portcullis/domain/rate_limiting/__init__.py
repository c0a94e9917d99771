"""Rate Limiting Domain

Sliding-window rate limiting with a durable store and an in-process
fixed-window fallback.
"""

from .entities import RateLimitDecision, RateLimitResult, WindowEntry
from .repositories import FixedWindowRepository, SlidingWindowRepository
from .rules import DEFAULT_RULES, RuleTable, classify_path
from .services import RateLimiter
from .value_objects import IdentifierType, RateLimitKey, RateLimitRule

__all__ = [
    "DEFAULT_RULES",
    "FixedWindowRepository",
    "IdentifierType",
    "RateLimitDecision",
    "RateLimitKey",
    "RateLimitResult",
    "RateLimitRule",
    "RateLimiter",
    "RuleTable",
    "SlidingWindowRepository",
    "WindowEntry",
    "classify_path",
]
