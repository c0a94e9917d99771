"""
Request Anomaly Heuristics

Cheap, pattern-based signals that a client is a script or a probe. Each check
short-circuits on the first match and only the reason is returned; the gate
decides what to do with it.
"""

import threading
from collections import deque
from typing import Deque, Dict, Optional, Tuple

AUTOMATION_USER_AGENT_TOKENS: Tuple[str, ...] = (
    "python",
    "curl",
    "wget",
    "libwww",
    "lwp",
    "scanner",
    "bot",
    "crawler",
)
TRAVERSAL_MARKERS: Tuple[str, ...] = ("../", "..\\")


class AnomalyDetector:
    """
    Flags automation user agents, request bursts and traversal probes.

    Args:
        frequency_threshold: Requests seen from one IP within the window
            before the next one is considered a burst.
        frequency_window_ms: Length of the rolling frequency window.
    """

    def __init__(self, frequency_threshold: int = 20, frequency_window_ms: int = 60_000):
        self.frequency_threshold = frequency_threshold
        self.frequency_window_ms = frequency_window_ms
        self._seen: Dict[str, Deque[int]] = {}
        self._lock = threading.Lock()

    def inspect(
        self,
        ip: str,
        user_agent: Optional[str],
        content_type: Optional[str],
        path: str,
        now_ms: int,
    ) -> Optional[str]:
        """Return the reason the request looks suspicious, or None."""
        lowered_agent = (user_agent or "").lower()
        if any(token in lowered_agent for token in AUTOMATION_USER_AGENT_TOKENS):
            return "automation_user_agent"

        if self.record_and_count(ip, now_ms) > self.frequency_threshold:
            return "high_request_frequency"

        if content_type and "../" in content_type:
            return "malformed_content_type"

        if any(marker in path for marker in TRAVERSAL_MARKERS):
            return "path_traversal"

        return None

    def record_and_count(self, ip: str, now_ms: int) -> int:
        """Record one request from ``ip``; return how many preceded it in the window."""
        cutoff = now_ms - self.frequency_window_ms
        with self._lock:
            seen = self._seen.setdefault(ip, deque())
            while seen and seen[0] <= cutoff:
                seen.popleft()
            prior = len(seen)
            seen.append(now_ms)
        return prior

    def sweep(self, now_ms: int) -> int:
        """Drop IPs with no request inside the window; return how many."""
        cutoff = now_ms - self.frequency_window_ms
        with self._lock:
            idle = [ip for ip, seen in self._seen.items() if not seen or seen[-1] <= cutoff]
            for ip in idle:
                del self._seen[ip]
        return len(idle)

    def tracked_ips(self) -> int:
        return len(self._seen)
