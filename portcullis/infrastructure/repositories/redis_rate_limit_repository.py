"""Redis-backed sliding-window rate limit repository.

Each key is a sorted set of request members scored by their arrival time in
epoch milliseconds. One ``hit`` runs as a MULTI/EXEC transaction:

    ZREMRANGEBYSCORE key 0 <now - window>
    ZADD key <now> <now>-<uuid>
    ZCARD key
    EXPIRE key <ceil(window / 1s)>

The expiry is refreshed on every write so an idle key disappears one window
after its last request.
"""

import asyncio
import math
import uuid
from typing import Any, Awaitable, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from portcullis.core.exceptions import (
    StoreDataError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from portcullis.domain.rate_limiting.repositories import SlidingWindowRepository
from portcullis.domain.rate_limiting.value_objects import RateLimitKey

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def run_bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a store call with a deadline, translating failures to StoreError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except (asyncio.TimeoutError, RedisTimeoutError) as exc:
        raise StoreTimeoutError(f"{operation} timed out after {timeout:.3f}s") from exc
    except (RedisError, OSError) as exc:
        raise StoreUnavailableError(f"{operation} failed: {exc}") from exc


class RedisSlidingWindowRepository(SlidingWindowRepository):
    """
    A concrete implementation of SlidingWindowRepository using Redis.

    Args:
        redis_client: The async Redis client instance.
        timeout_seconds: Upper bound on every round trip.
    """

    def __init__(self, redis_client: Redis, timeout_seconds: float = 0.25):
        self.redis = redis_client
        self.timeout_seconds = timeout_seconds

    async def hit(self, key: RateLimitKey, window_ms: int, now_ms: int) -> int:
        store_key = key.composite_key
        window_start = now_ms - window_ms
        member = f"{now_ms}-{uuid.uuid4().hex}"
        ttl_seconds = max(1, math.ceil(window_ms / 1000))

        async def _transaction() -> list:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(store_key, 0, window_start)
                pipe.zadd(store_key, {member: now_ms})
                pipe.zcard(store_key)
                pipe.expire(store_key, ttl_seconds)
                return await pipe.execute()

        results = await run_bounded(_transaction(), self.timeout_seconds, "sliding window hit")
        return self._parse_count(store_key, results)

    @staticmethod
    def _parse_count(store_key: str, results: Any) -> int:
        if not results or len(results) < 3:
            raise StoreDataError(f"Incomplete pipeline reply for {store_key}")
        count = results[2]
        if isinstance(count, bool):
            raise StoreDataError(f"Malformed ZCARD reply for {store_key}: {count!r}")
        try:
            return int(count)
        except (TypeError, ValueError) as exc:
            raise StoreDataError(f"Malformed ZCARD reply for {store_key}: {count!r}") from exc

    async def reset(self, key: RateLimitKey) -> None:
        await run_bounded(self.redis.delete(key.composite_key), self.timeout_seconds, "reset")

    async def ping(self) -> bool:
        try:
            return bool(await run_bounded(self.redis.ping(), self.timeout_seconds, "ping"))
        except (StoreTimeoutError, StoreUnavailableError) as exc:
            logger.warning("redis_ping_failed", error=str(exc))
            return False
