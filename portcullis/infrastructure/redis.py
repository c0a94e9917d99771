"""
Redis Connection Module

This module builds the asynchronous Redis client shared by the durable rate
limit and lockout repositories. The client is created once by the application
lifespan and closed on shutdown; when ``REDIS_URL`` is not configured no client
is created and every subsystem runs on its in-process store.

**Security Note**: Use a ``rediss://`` URL with credentials when the store is
reached over an untrusted network (OWASP A02:2021 - Cryptographic Failures).
Connection URLs are never logged because they may embed passwords.

Functions:
    create_redis_client: Build a client from settings, or None in in-memory mode.
    close_redis_client: Close a client created by ``create_redis_client``.
"""

from typing import Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from portcullis.core.config.redis import RedisSettings

logger = structlog.get_logger(__name__)


def create_redis_client(settings: RedisSettings) -> Optional[Redis]:
    """
    Create the shared Redis client.

    Connection and socket timeouts follow ``REDIS_TIMEOUT_MS`` so a dead
    store surfaces as a fast error instead of a hung request.

    Returns:
        Optional[Redis]: The client, or None when no REDIS_URL is configured.
    """
    if not settings.REDIS_URL:
        logger.info("redis_not_configured", mode="in_memory_only")
        return None

    timeout = settings.redis_timeout_seconds
    client = Redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    logger.info("redis_client_created", timeout_ms=settings.REDIS_TIMEOUT_MS)
    return client


async def close_redis_client(client: Optional[Redis]) -> None:
    if client is None:
        return
    try:
        await client.aclose()
        logger.debug("redis_client_closed")
    except RedisError as exc:
        logger.warning("redis_client_close_failed", error=str(exc))
