"""
Account Lockout Repositories

Storage contract for per-identity failure state. Durable implementations raise
``StoreError`` on infrastructure failures; the in-process implementation
never does.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from .entities import LockoutEntry


class LockoutRepository(ABC):
    """Repository interface for lockout entries keyed by identity."""

    @abstractmethod
    async def load(self, identity: str) -> Optional[LockoutEntry]:
        """
        Return the stored entry for ``identity``, or None.

        Raises:
            StoreError: When the store fails or holds malformed data.
        """

    @abstractmethod
    async def save(self, identity: str, entry: LockoutEntry, ttl_ms: int) -> None:
        """
        Persist ``entry`` and refresh its expiry to ``ttl_ms``.

        Raises:
            StoreError: When the store fails.
        """

    @abstractmethod
    async def update(
        self,
        identity: str,
        mutate: Callable[[Optional[LockoutEntry]], Optional[LockoutEntry]],
        ttl_ms: int,
    ) -> Optional[LockoutEntry]:
        """
        Atomically replace the entry for ``identity`` with ``mutate(current)``.

        ``mutate`` receives a private copy of the stored entry (or None) and
        returns the entry to persist, or None to leave the store untouched.
        It may be called more than once, so it must not have side effects.

        Returns:
            The entry as stored once the call completes.

        Raises:
            StoreError: When the store fails.
        """

    @abstractmethod
    async def delete(self, identity: str) -> None:
        """
        Remove any entry for ``identity``.

        Raises:
            StoreError: When the store fails.
        """


class PurgeableLockoutRepository(LockoutRepository):
    """A lockout repository whose expired entries are swept by the caller."""

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """Drop elapsed locks and entries idle for 24h; return how many."""
