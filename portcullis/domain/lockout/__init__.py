from .entities import FailureRecord, LockoutEntry, LockoutPolicy, LockStatus
from .repositories import LockoutRepository, PurgeableLockoutRepository
from .services import LockoutTracker

__all__ = [
    "FailureRecord",
    "LockoutEntry",
    "LockoutPolicy",
    "LockStatus",
    "LockoutRepository",
    "PurgeableLockoutRepository",
    "LockoutTracker",
]
