"""In-process lockout repository.

Holds lockout state when no durable store is configured and answers single
calls whenever the durable store fails.
"""

import threading
from dataclasses import replace
from typing import Callable, Dict, Optional

from portcullis.domain.lockout.entities import LockoutEntry
from portcullis.domain.lockout.repositories import PurgeableLockoutRepository


class InMemoryLockoutRepository(PurgeableLockoutRepository):
    """Lockout entries in a lock-guarded dict.

    Entries are copied on the way in and out so callers can mutate what they
    load without touching stored state before ``save``.
    """

    def __init__(self):
        self._entries: Dict[str, LockoutEntry] = {}
        self._lock = threading.Lock()

    async def load(self, identity: str) -> Optional[LockoutEntry]:
        with self._lock:
            entry = self._entries.get(identity)
            return replace(entry) if entry is not None else None

    async def save(self, identity: str, entry: LockoutEntry, ttl_ms: int) -> None:
        # expiry is handled by purge_expired, not ttl_ms
        with self._lock:
            self._entries[identity] = replace(entry)

    async def update(
        self,
        identity: str,
        mutate: Callable[[Optional[LockoutEntry]], Optional[LockoutEntry]],
        ttl_ms: int,
    ) -> Optional[LockoutEntry]:
        with self._lock:
            current = self._entries.get(identity)
            updated = mutate(replace(current) if current is not None else None)
            if updated is None:
                return replace(current) if current is not None else None
            self._entries[identity] = replace(updated)
            return updated

    async def delete(self, identity: str) -> None:
        with self._lock:
            self._entries.pop(identity, None)

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            expired = [k for k, entry in self._entries.items() if entry.is_expired(now_ms)]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
