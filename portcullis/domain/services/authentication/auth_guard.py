"""
Credential Authentication Guard

``AuthGuard`` is the single entry point for email/password sign-in. It applies,
in order, the per-IP LOGIN rate limit, the per-account lockout, the credential
lookup and the password check. Every failure after the rate limit produces
the same caller-visible outcome, so a client cannot tell an unknown email from
a wrong password or a locked account.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from passlib.context import CryptContext
from starlette.responses import JSONResponse
from structlog import get_logger

from portcullis.domain.interfaces.repositories import ICredentialsRepository
from portcullis.domain.lockout.services import LockoutTracker
from portcullis.domain.rate_limiting.services import RateLimiter
from portcullis.domain.rate_limiting.value_objects import IdentifierType
from portcullis.utils.security import verify_password

logger = get_logger(__name__)

LOGIN_RULE = "LOGIN"


class AuthStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class AuthOutcome:
    status: AuthStatus
    user_id: Optional[str] = None
    response: Optional[JSONResponse] = None

    @property
    def authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED


INVALID = AuthOutcome(status=AuthStatus.INVALID_CREDENTIALS)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthGuard:
    """
    Guards credential sign-in with rate limiting and account lockout.

    Attributes:
        credentials (ICredentialsRepository): Lookup of stored password hashes.
        lockout (LockoutTracker): Per-account failure tracking.
        rate_limiter (RateLimiter): Per-IP LOGIN rule enforcement.
        pwd_context (CryptContext): Passlib context used to verify hashes.
    """

    def __init__(
        self,
        credentials: ICredentialsRepository,
        lockout: LockoutTracker,
        rate_limiter: RateLimiter,
        pwd_context: CryptContext,
    ):
        self.credentials = credentials
        self.lockout = lockout
        self.rate_limiter = rate_limiter
        self.pwd_context = pwd_context

    async def authenticate(
        self, email: Optional[str], password: Optional[str], client_ip: str = "unknown"
    ) -> AuthOutcome:
        """
        Authenticate a user by email and password.

        Args:
            email: Submitted email; matched case-insensitively.
            password: Submitted password. Never logged.
            client_ip: Resolved client address for the LOGIN rule.

        Returns:
            AuthOutcome: ``AUTHENTICATED`` with the user id, ``RATE_LIMITED``
            with a ready 429 response, or ``INVALID_CREDENTIALS``.
        """
        if not email or not password:
            return INVALID

        decision = await self.rate_limiter.check_named_rule(
            LOGIN_RULE, client_ip, IdentifierType.IP
        )
        if decision.limited:
            logger.warning("login_rate_limited", client_ip=client_ip)
            return AuthOutcome(status=AuthStatus.RATE_LIMITED, response=decision.response)

        identity = normalize_email(email)

        lock_status = await self.lockout.is_locked(identity)
        if lock_status.locked:
            # same bcrypt cost as the other failure paths
            self.pwd_context.dummy_verify()
            logger.warning(
                "login_attempt_on_locked_account",
                identity=identity,
                client_ip=client_ip,
            )
            return INVALID

        user = await self.credentials.get_by_email(identity)
        if user is None or not user.hashed_password:
            # keeps the response time of unknown accounts close to a real verify
            self.pwd_context.dummy_verify()
            await self.lockout.record_failure(identity)
            logger.info("login_failed", identity=identity, client_ip=client_ip)
            return INVALID

        if not verify_password(password, user.hashed_password, self.pwd_context):
            record = await self.lockout.record_failure(identity)
            if record.locked:
                logger.warning(
                    "account_locked_after_failures",
                    identity=identity,
                    client_ip=client_ip,
                    locked_until=record.locked_until,
                )
            else:
                logger.info("login_failed", identity=identity, client_ip=client_ip)
            return INVALID

        await self.lockout.clear(identity)
        logger.info("login_succeeded", user_id=user.id, client_ip=client_ip)
        return AuthOutcome(status=AuthStatus.AUTHENTICATED, user_id=user.id)
