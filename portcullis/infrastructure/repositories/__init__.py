from .memory_credentials_repository import InMemoryCredentialsRepository
from .memory_lockout_repository import InMemoryLockoutRepository
from .memory_rate_limit_repository import InMemoryFixedWindowRepository
from .redis_lockout_repository import RedisLockoutRepository
from .redis_rate_limit_repository import RedisSlidingWindowRepository, run_bounded

__all__ = [
    "InMemoryCredentialsRepository",
    "InMemoryLockoutRepository",
    "InMemoryFixedWindowRepository",
    "RedisLockoutRepository",
    "RedisSlidingWindowRepository",
    "run_bounded",
]
