"""Named rate limit rules and endpoint classification."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping

from .value_objects import RateLimitRule

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS

# Route handler rules, checked per IP or per user
LOGIN = RateLimitRule("LOGIN", 15 * MINUTE_MS, 5, 15 * MINUTE_MS)
REGISTRATION = RateLimitRule("REGISTRATION", HOUR_MS, 3, HOUR_MS)
AI_ANALYZE = RateLimitRule("AI_ANALYZE", MINUTE_MS, 10, 5 * MINUTE_MS)
AI_IDENTIFY = RateLimitRule("AI_IDENTIFY", MINUTE_MS, 5, 5 * MINUTE_MS)
GENERAL = RateLimitRule("GENERAL", MINUTE_MS, 60, MINUTE_MS)

# Gate rules, selected by path classification
GATE_GENERAL = RateLimitRule("general", 15 * MINUTE_MS, 100)
GATE_AUTH = RateLimitRule("auth", 15 * MINUTE_MS, 5)
GATE_UPLOAD = RateLimitRule("upload", HOUR_MS, 20)
GATE_AI = RateLimitRule("ai", HOUR_MS, 10)

DEFAULT_RULES: Mapping[str, RateLimitRule] = MappingProxyType(
    {
        rule.name: rule
        for rule in (
            LOGIN,
            REGISTRATION,
            AI_ANALYZE,
            AI_IDENTIFY,
            GENERAL,
            GATE_GENERAL,
            GATE_AUTH,
            GATE_UPLOAD,
            GATE_AI,
        )
    }
)


def classify_path(path: str) -> str:
    """Map a request path to the gate rule name that governs it.

    >>> classify_path("/api/auth/signin")
    'auth'
    >>> classify_path("/api/plants")
    'general'
    """
    if "/auth/" in path:
        return GATE_AUTH.name
    if "/upload" in path:
        return GATE_UPLOAD.name
    if "/analyze" in path or "/identify" in path:
        return GATE_AI.name
    return GATE_GENERAL.name


class RuleTable(Mapping[str, RateLimitRule]):
    """Immutable name -> rule lookup, built once at startup."""

    def __init__(self, rules: Mapping[str, RateLimitRule] = DEFAULT_RULES):
        self._rules = dict(rules)
        for name, rule in self._rules.items():
            if name != rule.name:
                raise ValueError(f"Rule registered as {name!r} is named {rule.name!r}")

    def __getitem__(self, name: str) -> RateLimitRule:
        return self._rules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def for_path(self, path: str) -> RateLimitRule:
        return self._rules[classify_path(path)]

    def __repr__(self) -> str:
        return f"RuleTable({sorted(self._rules)})"
