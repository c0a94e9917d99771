"""
Account Lockout Domain Services

``LockoutTracker`` counts failed authentications per identity (normally the
lowercased email) and locks the identity once a threshold is reached. State
lives in a durable ``LockoutRepository`` when one is configured; any store
failure is answered by the in-process repository instead, so a lockout check
never raises on an outage.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from portcullis.core.clock import Clock, system_clock
from portcullis.core.exceptions import StoreError
from portcullis.core.maintenance import PeriodicTask

from .entities import FailureRecord, LockoutEntry, LockoutPolicy, LockStatus
from .repositories import LockoutRepository, PurgeableLockoutRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class LockoutTracker:
    """
    Tracks failed logins and temporary account locks.

    Args:
        fallback: In-process repository; always required.
        repository: Durable repository; ``None`` runs in-memory only.
        policy: Thresholds and durations.
        clock: Millisecond time source.
        purge_interval_seconds: Cadence of the fallback purge loop.
        purge_enabled: Whether ``start()`` schedules the purge loop at all.
    """

    def __init__(
        self,
        fallback: PurgeableLockoutRepository,
        repository: Optional[LockoutRepository] = None,
        policy: Optional[LockoutPolicy] = None,
        clock: Clock = system_clock,
        purge_interval_seconds: float = 3600,
        purge_enabled: bool = False,
    ):
        self.fallback = fallback
        self.repository = repository
        self.policy = policy or LockoutPolicy()
        self._clock = clock
        self._purge_enabled = purge_enabled
        self._purge_task = PeriodicTask(
            "lockout_fallback_purge", purge_interval_seconds, self.purge_expired
        )

    async def _with_fallback(
        self,
        operation: str,
        identity: str,
        call: Callable[[LockoutRepository], Awaitable[T]],
    ) -> T:
        if self.repository is None:
            return await call(self.fallback)
        try:
            return await call(self.repository)
        except StoreError as exc:
            logger.warning(
                "lockout_store_failed",
                operation=operation,
                identity=identity,
                error=str(exc),
                error_code=exc.code,
            )
            return await call(self.fallback)

    @staticmethod
    def _status(entry: Optional[LockoutEntry], now: int) -> LockStatus:
        if entry is None or not entry.is_locked(now):
            return LockStatus(locked=False)
        return LockStatus(
            locked=True,
            remaining_ms=entry.locked_until - now,
            locked_until=entry.locked_until,
        )

    async def is_locked(self, identity: str) -> LockStatus:
        """Report whether ``identity`` is locked; an elapsed lock is reset and persisted."""

        async def _check(repo: LockoutRepository) -> LockStatus:
            now = self._clock()
            entry = await repo.load(identity)
            if entry is None or not entry.lock_elapsed(now):
                return self._status(entry, now)

            def _reset(current: Optional[LockoutEntry]) -> Optional[LockoutEntry]:
                if current is None or not current.lock_elapsed(now):
                    return None
                return LockoutEntry(failed_attempts=0, last_failure_time=current.last_failure_time)

            entry = await repo.update(identity, _reset, self.policy.entry_ttl_ms)
            status = self._status(entry, now)
            if not status.locked:
                logger.info("account_lock_expired", identity=identity)
            return status

        return await self._with_fallback("is_locked", identity, _check)

    async def record_failure(self, identity: str) -> FailureRecord:
        """
        Count one failed authentication for ``identity``.

        The counter restarts when the previous failure is older than the
        failure window. Reaching ``max_failed_attempts`` locks the identity
        for ``lockout_duration_ms``. The read-modify-write is a single
        repository ``update``, so concurrent failures are all counted.
        """
        policy = self.policy

        async def _record(repo: LockoutRepository) -> FailureRecord:
            now = self._clock()

            def _count(entry: Optional[LockoutEntry]) -> LockoutEntry:
                entry = entry or LockoutEntry()
                if now - entry.last_failure_time > policy.failure_window_ms:
                    entry.failed_attempts = 0
                if entry.lock_elapsed(now):
                    entry.failed_attempts = 0
                    entry.locked_until = None

                entry.failed_attempts += 1
                entry.last_failure_time = now
                if entry.failed_attempts >= policy.max_failed_attempts:
                    entry.locked_until = now + policy.lockout_duration_ms
                return entry

            entry = await repo.update(identity, _count, policy.entry_ttl_ms)

            if entry.failed_attempts >= policy.max_failed_attempts:
                logger.warning(
                    "account_locked",
                    identity=identity,
                    failed_attempts=entry.failed_attempts,
                    locked_until=entry.locked_until,
                )
                return FailureRecord(locked=True, locked_until=entry.locked_until)

            return FailureRecord(
                locked=False,
                attempts_remaining=policy.max_failed_attempts - entry.failed_attempts,
            )

        return await self._with_fallback("record_failure", identity, _record)

    async def clear(self, identity: str) -> None:
        """Forget all failures for ``identity``, e.g. after a successful login."""

        async def _clear(repo: LockoutRepository) -> None:
            await repo.delete(identity)

        await self._with_fallback("clear", identity, _clear)

    def purge_expired(self) -> int:
        removed = self.fallback.purge_expired(self._clock())
        if removed:
            logger.debug("lockout_entries_purged", removed=removed)
        return removed

    def start(self) -> None:
        if self._purge_enabled:
            self._purge_task.start()

    async def stop(self) -> None:
        await self._purge_task.stop()
