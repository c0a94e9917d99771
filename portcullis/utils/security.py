"""Security utilities for password hashing and verification.

This module provides the passlib context shared by the authentication guard
and by tooling that seeds credential stores.
"""

from passlib.context import CryptContext

DEFAULT_BCRYPT_ROUNDS = 12


def create_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    """Build a bcrypt context with the given work factor.

    Args:
        rounds: Bcrypt cost; tests use the minimum (4) to stay fast.

    Returns:
        CryptContext: Context that also flags weaker hashes for rehash.
    """
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


pwd_context = create_password_context()


def hash_password(password: str, context: CryptContext = pwd_context) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash
        context: Passlib context to hash with

    Returns:
        str: Bcrypt-hashed password
    """
    return context.hash(password)


def verify_password(password: str, hashed_password: str, context: CryptContext = pwd_context) -> bool:
    """Verify a password against its hash.

    A malformed or unrecognized hash counts as a mismatch rather than an
    error, so a corrupted row cannot be told apart from a wrong password.

    Args:
        password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against
        context: Passlib context to verify with

    Returns:
        bool: True if password matches hash
    """
    try:
        return context.verify(password, hashed_password)
    except (ValueError, TypeError):
        return False
