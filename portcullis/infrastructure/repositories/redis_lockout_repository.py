"""Redis-backed lockout repository.

Each identity is a hash at ``lock:{identity}`` with the fields
``failed_attempts``, ``last_failure_time`` and, while locked, ``locked_until``.
Every write rewrites the hash and refreshes its expiry with PEXPIRE.

``update`` is an optimistic transaction: the key is WATCHed, read, and
rewritten in MULTI/EXEC. A concurrent write to the same key aborts the EXEC
and the read-modify-write is retried, so concurrent failures for one identity
are never lost.
"""

from typing import Callable, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import WatchError

from portcullis.core.exceptions import StoreDataError, StoreUnavailableError
from portcullis.domain.lockout.entities import LockoutEntry
from portcullis.domain.lockout.repositories import LockoutRepository

from .redis_rate_limit_repository import run_bounded

KEY_PREFIX = "lock"


class RedisLockoutRepository(LockoutRepository):
    """
    A concrete implementation of LockoutRepository using Redis hashes.

    Args:
        redis_client: The async Redis client instance.
        timeout_seconds: Upper bound on every call, retries included.
        max_retries: Aborted transactions tolerated by one ``update``.
    """

    def __init__(self, redis_client: Redis, timeout_seconds: float = 0.25, max_retries: int = 20):
        self.redis = redis_client
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries

    @staticmethod
    def _key(identity: str) -> str:
        return f"{KEY_PREFIX}:{identity}"

    @staticmethod
    def _parse(key: str, data: Dict[str, str]) -> Optional[LockoutEntry]:
        if not data:
            return None
        try:
            return LockoutEntry.from_mapping(data)
        except (TypeError, ValueError, AttributeError) as exc:
            raise StoreDataError(f"Malformed lockout entry at {key}") from exc

    async def load(self, identity: str) -> Optional[LockoutEntry]:
        key = self._key(identity)
        data = await run_bounded(self.redis.hgetall(key), self.timeout_seconds, "lockout load")
        return self._parse(key, data)

    async def save(self, identity: str, entry: LockoutEntry, ttl_ms: int) -> None:
        key = self._key(identity)

        async def _write() -> list:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=entry.to_mapping())
                pipe.pexpire(key, ttl_ms)
                return await pipe.execute()

        await run_bounded(_write(), self.timeout_seconds, "lockout save")

    async def update(
        self,
        identity: str,
        mutate: Callable[[Optional[LockoutEntry]], Optional[LockoutEntry]],
        ttl_ms: int,
    ) -> Optional[LockoutEntry]:
        key = self._key(identity)

        async def _transact() -> Optional[LockoutEntry]:
            async with self.redis.pipeline(transaction=True) as pipe:
                for _ in range(self.max_retries):
                    await pipe.watch(key)
                    current = self._parse(key, await pipe.hgetall(key))
                    updated = mutate(current)
                    if updated is None:
                        return current
                    pipe.multi()
                    pipe.delete(key)
                    pipe.hset(key, mapping=updated.to_mapping())
                    pipe.pexpire(key, ttl_ms)
                    try:
                        await pipe.execute()
                    except WatchError:
                        continue
                    return updated
            raise StoreUnavailableError(
                f"lockout update for {key} aborted {self.max_retries} times by concurrent writes"
            )

        return await run_bounded(_transact(), self.timeout_seconds, "lockout update")

    async def delete(self, identity: str) -> None:
        await run_bounded(
            self.redis.delete(self._key(identity)), self.timeout_seconds, "lockout delete"
        )
