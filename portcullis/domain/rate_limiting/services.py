"""
Rate Limiting Domain Services

``RateLimiter`` binds named rules to a two-tier counter:

- a durable ``SlidingWindowRepository`` (Redis in production) that gives
  accurate, distributed sliding-window counts, and
- a process-local ``FixedWindowRepository`` used when no durable store is
  configured, or for a single call whenever the durable store fails.

Policy: fail permissive on infrastructure error, fail restrictive on policy
violation. A store outage never raises out of ``check_rate_limit``; the call
is answered by the fallback and the result is marked ``degraded``.
"""

from __future__ import annotations

from typing import Optional

import structlog

from portcullis.core.clock import Clock, system_clock
from portcullis.core.exceptions import StoreError
from portcullis.core.maintenance import PeriodicTask
from portcullis.core.responses import (
    IP_RATE_LIMIT_MESSAGE,
    USER_RATE_LIMIT_MESSAGE,
    rate_limit_response,
)

from .entities import RateLimitDecision, RateLimitResult
from .repositories import FixedWindowRepository, SlidingWindowRepository
from .rules import RuleTable
from .value_objects import IdentifierType, RateLimitKey, RateLimitRule

logger = structlog.get_logger(__name__)

DEFAULT_SCOPE = "rl"


class RateLimiter:
    """
    Main domain service for rate limiting decisions.

    Args:
        fallback: Process-local counter; always required.
        durable: Shared store; ``None`` runs in in-memory-only mode.
        rules: Named rule table used by ``check_named_rule``.
        clock: Millisecond time source.
        purge_interval_seconds: Cadence of the fallback purge loop.
        purge_enabled: Whether ``start()`` schedules the purge loop at all.
    """

    def __init__(
        self,
        fallback: FixedWindowRepository,
        durable: Optional[SlidingWindowRepository] = None,
        rules: Optional[RuleTable] = None,
        clock: Clock = system_clock,
        purge_interval_seconds: float = 3600,
        purge_enabled: bool = False,
    ):
        self.fallback = fallback
        self.durable = durable
        self.rules = rules if rules is not None else RuleTable()
        self._clock = clock
        self._purge_enabled = purge_enabled
        self._purge_task = PeriodicTask(
            "rate_limit_fallback_purge", purge_interval_seconds, self.purge_expired
        )

    @property
    def has_durable_store(self) -> bool:
        return self.durable is not None

    async def check_rate_limit(
        self, identifier: str, rule: RateLimitRule, scope: str = DEFAULT_SCOPE
    ) -> RateLimitResult:
        """
        Count one request for ``identifier`` against ``rule`` in ``scope``.

        The request that pushes the count over the limit is itself counted and
        reported as disallowed; callers must not count it again on retry.

        Args:
            identifier: Client IP or opaque user id.
            rule: The rule to enforce.
            scope: Key prefix separating independent counters.

        Returns:
            RateLimitResult with the decision and retry metadata.
        """
        key = RateLimitKey(scope=scope, rule_name=rule.name, identifier=identifier)
        now = self._clock()

        if self.durable is None:
            result = self.fallback.check(key, rule, now)
        else:
            try:
                count = await self.durable.hit(key, rule.window_ms, now)
            except StoreError as exc:
                result = self._degrade(key, rule, now, exc)
            else:
                result = RateLimitResult(
                    allowed=count <= rule.max_requests,
                    current_count=count,
                    remaining=max(0, rule.max_requests - count),
                    reset_at_ms=now + rule.window_ms,
                )

        if not result.allowed:
            logger.warning(
                "rate_limit_exceeded",
                key=key.composite_key,
                rule=rule.name,
                count=result.current_count,
                limit=rule.max_requests,
                degraded=result.degraded,
            )
        return result

    def _degrade(
        self, key: RateLimitKey, rule: RateLimitRule, now: int, error: StoreError
    ) -> RateLimitResult:
        """Answer a single call from the fallback after a durable store failure."""
        logger.warning(
            "rate_limit_store_failed",
            key=key.composite_key,
            rule=rule.name,
            error=str(error),
            error_code=error.code,
        )
        result = self.fallback.check(key, rule, now)
        return RateLimitResult(
            allowed=result.allowed,
            current_count=result.current_count,
            remaining=result.remaining,
            reset_at_ms=result.reset_at_ms,
            degraded=True,
        )

    async def check_named_rule(
        self,
        rule_name: str,
        identifier: str,
        identifier_type: IdentifierType | str = IdentifierType.IP,
    ) -> RateLimitDecision:
        """
        Check a rule from the table and build the 429 response on denial.

        Args:
            rule_name: A name registered in the rule table, e.g. ``LOGIN``.
            identifier: Client IP or user id.
            identifier_type: ``ip`` or ``user``; also used as the key scope.

        Raises:
            KeyError: If ``rule_name`` is not registered.
        """
        rule = self.rules[rule_name]
        identifier_type = IdentifierType(identifier_type)
        result = await self.check_rate_limit(identifier, rule, scope=identifier_type.value)
        if result.allowed:
            return RateLimitDecision(limited=False, result=result)

        message = (
            USER_RATE_LIMIT_MESSAGE
            if identifier_type is IdentifierType.USER
            else IP_RATE_LIMIT_MESSAGE
        )
        return RateLimitDecision(
            limited=True,
            result=result,
            response=rate_limit_response(result, self._clock(), message),
        )

    async def reset(
        self, identifier: str, rule: RateLimitRule, scope: str = DEFAULT_SCOPE
    ) -> None:
        """Clear the counters for one key in both tiers."""
        key = RateLimitKey(scope=scope, rule_name=rule.name, identifier=identifier)
        self.fallback.reset(key)
        if self.durable is not None:
            try:
                await self.durable.reset(key)
            except StoreError as exc:
                logger.warning("rate_limit_reset_failed", key=key.composite_key, error=str(exc))

    def purge_expired(self) -> int:
        removed = self.fallback.purge_expired(self._clock())
        if removed:
            logger.debug("rate_limit_entries_purged", removed=removed)
        return removed

    def start(self) -> None:
        if self._purge_enabled:
            self._purge_task.start()

    async def stop(self) -> None:
        await self._purge_task.stop()
