"""
DoS Protection Gate

``DoSGate.evaluate`` turns a framework-free ``RequestSnapshot`` into an
``AdmissionDecision`` by running, in order:

1. the suspicious-IP block list (429)
2. the declared payload size (413)
3. the per-IP concurrency cap (429)
4. the path-classified per-IP rate limit (429 with retry headers)
5. anomaly heuristics, which also block the IP for a while (429)

and registering the admitted request as active. Active requests are released
by timeout only; the gate has no hook into request completion.

The gate protects the service, so it never takes the service down with it:
any unexpected error while evaluating is logged and the request is admitted.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import structlog
from starlette import status

from portcullis.core.clock import Clock, system_clock
from portcullis.core.maintenance import PeriodicTask
from portcullis.core.responses import rate_limit_headers
from portcullis.domain.rate_limiting.entities import RateLimitResult
from portcullis.domain.rate_limiting.rules import RuleTable
from portcullis.domain.rate_limiting.services import RateLimiter

from .anomaly_detection import AnomalyDetector

logger = structlog.get_logger(__name__)

DOS_SCOPE = "dos"
MIB = 1024 * 1024


@dataclass(frozen=True)
class DoSProtectionConfig:
    enabled: bool = False
    max_request_size: int = 10 * MIB
    max_concurrent_requests: int = 50
    request_timeout_ms: int = 30_000
    anomaly_detection: bool = True
    suspicious_ip_ttl_ms: int = 30 * 60 * 1000
    frequency_threshold: int = 20
    frequency_window_ms: int = 60_000
    sweep_interval_seconds: float = 60


@dataclass(frozen=True)
class RequestSnapshot:
    """The parts of an inbound request the gate looks at.

    ``content_length`` is the raw header value; it is parsed by the gate.
    """

    ip: str
    method: str
    path: str
    user_agent: Optional[str] = None
    content_length: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class ActiveRequestRecord:
    request_id: str
    start_time: int
    size_bytes: int
    ip: str
    user_agent: Optional[str]
    path: str


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of the gate for one request.

    ``reason`` names the check that fired and is for logs only; response
    bodies stay generic.
    """

    admitted: bool
    status_code: Optional[int] = None
    reason: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    rate_limit: Optional[RateLimitResult] = None

    @classmethod
    def admit(cls) -> AdmissionDecision:
        return cls(admitted=True)

    @classmethod
    def reject(
        cls,
        status_code: int,
        reason: str,
        headers: Optional[Dict[str, str]] = None,
        rate_limit: Optional[RateLimitResult] = None,
    ) -> AdmissionDecision:
        return cls(
            admitted=False,
            status_code=status_code,
            reason=reason,
            headers=headers or {},
            rate_limit=rate_limit,
        )


def parse_content_length(raw: Optional[str]) -> Optional[int]:
    """Parse a Content-Length header; anything non-numeric counts as undeclared."""
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


class DoSGate:
    """
    Per-process request admission gate.

    Args:
        config: Limits and switches.
        rate_limiter: Shared limiter; the gate counts under the ``dos`` scope.
        detector: Anomaly heuristics; built from ``config`` when omitted.
        clock: Millisecond time source.
        id_factory: Request id generator, replaceable in tests.
    """

    def __init__(
        self,
        config: DoSProtectionConfig,
        rate_limiter: RateLimiter,
        detector: Optional[AnomalyDetector] = None,
        clock: Clock = system_clock,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self.detector = detector or AnomalyDetector(
            frequency_threshold=config.frequency_threshold,
            frequency_window_ms=config.frequency_window_ms,
        )
        self._clock = clock
        self._id_factory = id_factory
        self._active: Dict[str, ActiveRequestRecord] = {}
        self._suspicious: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._sweep_task = PeriodicTask(
            "dos_gate_sweep", config.sweep_interval_seconds, self.sweep
        )

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def rules(self) -> RuleTable:
        return self.rate_limiter.rules

    async def evaluate(self, snapshot: RequestSnapshot) -> AdmissionDecision:
        if not self.config.enabled:
            return AdmissionDecision.admit()

        try:
            decision = await self._evaluate(snapshot)
        except Exception as exc:
            logger.error(
                "dos_protection_error",
                ip=snapshot.ip,
                path=snapshot.path,
                error=str(exc),
                exc_info=True,
            )
            return AdmissionDecision.admit()

        if not decision.admitted:
            logger.warning(
                "dos_request_rejected",
                ip=snapshot.ip,
                path=snapshot.path,
                status_code=decision.status_code,
                reason=decision.reason,
            )
        return decision

    async def _evaluate(self, snapshot: RequestSnapshot) -> AdmissionDecision:
        ip = snapshot.ip

        if self.is_suspicious(ip):
            return AdmissionDecision.reject(status.HTTP_429_TOO_MANY_REQUESTS, "suspicious_ip")

        size = parse_content_length(snapshot.content_length)
        if size is not None and size > self.config.max_request_size:
            return AdmissionDecision.reject(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, f"payload_too_large:{size}"
            )

        if self.active_requests_for(ip) >= self.config.max_concurrent_requests:
            return AdmissionDecision.reject(
                status.HTTP_429_TOO_MANY_REQUESTS, "too_many_concurrent_requests"
            )

        rule = self.rules.for_path(snapshot.path)
        result = await self.rate_limiter.check_rate_limit(ip, rule, scope=DOS_SCOPE)
        if not result.allowed:
            headers = rate_limit_headers(result, self._clock())
            headers.pop("X-RateLimit-Reset", None)
            return AdmissionDecision.reject(
                status.HTTP_429_TOO_MANY_REQUESTS,
                f"rate_limit_exceeded:{rule.name}",
                headers=headers,
                rate_limit=result,
            )

        if self.config.anomaly_detection:
            reason = self.detector.inspect(
                ip, snapshot.user_agent, snapshot.content_type, snapshot.path, self._clock()
            )
            if reason is not None:
                self.mark_suspicious(ip)
                return AdmissionDecision.reject(status.HTTP_429_TOO_MANY_REQUESTS, reason)

        self.register_active_request(snapshot, size or 0)
        return AdmissionDecision.admit()

    def register_active_request(
        self, snapshot: RequestSnapshot, size_bytes: int = 0
    ) -> ActiveRequestRecord:
        record = ActiveRequestRecord(
            request_id=f"{snapshot.ip}-{self._id_factory()}",
            start_time=self._clock(),
            size_bytes=size_bytes,
            ip=snapshot.ip,
            user_agent=snapshot.user_agent,
            path=snapshot.path,
        )
        with self._lock:
            self._active[record.request_id] = record
        return record

    def active_requests_for(self, ip: str) -> int:
        """Count admitted requests from ``ip`` that have not yet timed out."""
        now = self._clock()
        timeout = self.config.request_timeout_ms
        with self._lock:
            return sum(
                1
                for record in self._active.values()
                if record.ip == ip and now - record.start_time < timeout
            )

    def mark_suspicious(self, ip: str) -> None:
        until = self._clock() + self.config.suspicious_ip_ttl_ms
        with self._lock:
            self._suspicious[ip] = until
        logger.warning("ip_marked_suspicious", ip=ip, blocked_until=until)

    def is_suspicious(self, ip: str) -> bool:
        now = self._clock()
        with self._lock:
            until = self._suspicious.get(ip)
            if until is None:
                return False
            if now >= until:
                del self._suspicious[ip]
                return False
            return True

    def sweep_stale_requests(self) -> int:
        now = self._clock()
        timeout = self.config.request_timeout_ms
        with self._lock:
            stale = [
                request_id
                for request_id, record in self._active.items()
                if now - record.start_time >= timeout
            ]
            for request_id in stale:
                del self._active[request_id]
        return len(stale)

    def sweep_suspicious_ips(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [ip for ip, until in self._suspicious.items() if now >= until]
            for ip in expired:
                del self._suspicious[ip]
        return len(expired)

    def sweep(self) -> None:
        removed_requests = self.sweep_stale_requests()
        removed_ips = self.sweep_suspicious_ips()
        idle_ips = self.detector.sweep(self._clock())
        if removed_requests or removed_ips or idle_ips:
            logger.debug(
                "dos_gate_swept",
                stale_requests=removed_requests,
                expired_suspicious_ips=removed_ips,
                idle_frequency_counters=idle_ips,
            )

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self.config.enabled,
                "active_requests": len(self._active),
                "suspicious_ips": len(self._suspicious),
                "durable_store": self.rate_limiter.has_durable_store,
            }

    def start(self) -> None:
        if self.config.enabled:
            self._sweep_task.start()

    async def stop(self) -> None:
        await self._sweep_task.stop()
