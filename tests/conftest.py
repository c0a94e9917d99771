import os

os.environ.setdefault("APP_ENV", "test")

import pytest
from fastapi.testclient import TestClient

from portcullis.core.application import create_application
from portcullis.core.config.settings import Settings
from portcullis.core.rate_limiting.config import RateLimitingConfig
from portcullis.domain.interfaces.repositories import UserCredentials
from portcullis.domain.lockout.entities import LockoutPolicy
from portcullis.domain.lockout.services import LockoutTracker
from portcullis.domain.rate_limiting.services import RateLimiter
from portcullis.infrastructure.repositories import (
    InMemoryCredentialsRepository,
    InMemoryFixedWindowRepository,
    InMemoryLockoutRepository,
    RedisLockoutRepository,
    RedisSlidingWindowRepository,
)
from portcullis.utils.security import create_password_context, hash_password
from utils.fake_clock import FakeClock
from utils.fake_redis import FakeRedis

ALLOWED_ORIGIN = "http://localhost:3000"
KNOWN_EMAIL = "gardener@example.com"
KNOWN_PASSWORD = "Correct-Horse-9"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope="session")
def pwd_context():
    """Minimum bcrypt cost keeps hashing fast in tests."""
    return create_password_context(rounds=4)


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(fallback=InMemoryFixedWindowRepository(), clock=clock)


@pytest.fixture
def durable_rate_limiter(clock, fake_redis):
    return RateLimiter(
        fallback=InMemoryFixedWindowRepository(),
        durable=RedisSlidingWindowRepository(fake_redis, timeout_seconds=0.05),
        clock=clock,
    )


@pytest.fixture
def lockout_tracker(clock):
    return LockoutTracker(fallback=InMemoryLockoutRepository(), policy=LockoutPolicy(), clock=clock)


@pytest.fixture
def durable_lockout_tracker(clock, fake_redis):
    return LockoutTracker(
        fallback=InMemoryLockoutRepository(),
        repository=RedisLockoutRepository(fake_redis, timeout_seconds=0.05),
        policy=LockoutPolicy(),
        clock=clock,
    )


@pytest.fixture
def credentials(pwd_context):
    return InMemoryCredentialsRepository(
        [
            UserCredentials(
                id="user-1",
                email=KNOWN_EMAIL,
                hashed_password=hash_password(KNOWN_PASSWORD, pwd_context),
            ),
            UserCredentials(id="user-2", email="oauth-only@example.com", hashed_password=None),
        ]
    )


def make_settings(**overrides) -> Settings:
    values = {
        "APP_ENV": "test",
        "ALLOWED_ORIGINS": ALLOWED_ORIGIN,
        "REDIS_URL": None,
        "LOG_JSON": False,
        "BCRYPT_WORK_FACTOR": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def test_settings():
    return make_settings()


@pytest.fixture
def app_factory(clock, credentials):
    """Build an application around injected settings, clock and credentials."""

    def _build(settings=None, rate_limiting_config=None):
        return create_application(
            settings=settings or make_settings(),
            rate_limiting_config=rate_limiting_config or RateLimitingConfig(),
            credentials=credentials,
            clock=clock,
        )

    return _build


@pytest.fixture
def client(app_factory):
    with TestClient(app_factory()) as test_client:
        yield test_client
