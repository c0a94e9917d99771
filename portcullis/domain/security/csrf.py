"""
CSRF Origin Validation

State-changing requests must carry an ``Origin`` header from the allow-list,
or, when the browser omits ``Origin``, a ``Referer`` whose origin is on the
allow-list. There is no token-based alternative: a request with neither
header is rejected.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlsplit

STATE_CHANGING_METHODS: FrozenSet[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Schemes whose URLs have a tuple origin; anything else serializes to "null"
DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


@dataclass(frozen=True)
class CSRFDecision:
    allowed: bool
    reason: str


def referer_origin(referer: str) -> Optional[str]:
    """
    Derive ``scheme://host[:port]`` from a Referer URL.

    The host is lowercased, a default port is dropped and an IPv6 literal is
    bracketed, matching how browsers serialize an origin.

    Returns:
        Optional[str]: The origin, or None when the URL cannot be parsed or
        has an opaque origin.
    """
    try:
        parts = urlsplit(referer.strip())
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not parts.netloc or not host or scheme not in DEFAULT_PORTS:
        return None

    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


class CSRFValidator:
    """Origin/Referer allow-list check for state-changing requests.

    Args:
        allowed_origins: Exact origins such as ``https://app.example.com``.
            Read once; later changes to the source list have no effect.
    """

    def __init__(self, allowed_origins: Iterable[str]):
        self.allowed_origins: FrozenSet[str] = frozenset(
            o.strip() for o in allowed_origins if o and o.strip()
        )

    def validate(
        self, method: str, origin: Optional[str], referer: Optional[str]
    ) -> CSRFDecision:
        if method.upper() not in STATE_CHANGING_METHODS:
            return CSRFDecision(True, "safe_method")

        if origin:
            if origin in self.allowed_origins:
                return CSRFDecision(True, "origin_allowed")
            return CSRFDecision(False, "origin_not_allowed")

        if referer:
            derived = referer_origin(referer)
            if derived is None:
                return CSRFDecision(False, "referer_malformed")
            if derived in self.allowed_origins:
                return CSRFDecision(True, "referer_allowed")
            return CSRFDecision(False, "referer_not_allowed")

        return CSRFDecision(False, "missing_origin_and_referer")
