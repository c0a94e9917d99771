"""Time source used by every stateful component.

Components accept a ``clock`` argument instead of reading the wall clock
directly, so tests can substitute a controllable clock and step through
windows, blocks and lockouts deterministically.
"""

import time
from typing import Callable

Clock = Callable[[], int]
"""Zero-argument callable returning the current epoch time in milliseconds."""


def system_clock() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
