"""Client address resolution behind proxies and CDNs."""

from typing import Mapping, Optional

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """
    Resolve the client address used to key per-IP limits.

    Header precedence: ``cf-connecting-ip``, ``x-real-ip``, then the first
    entry of ``x-forwarded-for``. These headers are client-controlled unless a
    trusted proxy overwrites them, so deployments must strip them at the edge.

    Args:
        headers: Request headers; lookups use lowercase names.
        peer: Transport peer address, used when no proxy header is present.

    Returns:
        str: The resolved address, or ``"unknown"``.
    """
    cf_connecting_ip = (headers.get("cf-connecting-ip") or "").strip()
    if cf_connecting_ip:
        return cf_connecting_ip

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    if peer:
        return peer
    return UNKNOWN_CLIENT
