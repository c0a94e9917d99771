"""Rate Limiting Configuration

Centralized configuration for rate limiting rules, allowing limits to be
tuned per deployment without code changes. Overrides are read once at startup
and merged over the built-in rule table; the merged table is immutable.

Example:
    RATE_LIMIT_RULE_OVERRIDES='{"LOGIN": {"max_requests": 10, "window_ms": 600000}}'
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from portcullis.core.exceptions import ConfigurationError
from portcullis.domain.rate_limiting.rules import DEFAULT_RULES, RuleTable
from portcullis.domain.rate_limiting.value_objects import RateLimitRule


class RuleOverride(BaseModel):
    """Fields to replace on one named rule. Unset fields keep their defaults."""

    model_config = ConfigDict(extra="forbid")

    window_ms: Optional[int] = Field(default=None, gt=0)
    max_requests: Optional[int] = Field(default=None, gt=0)
    block_duration_ms: Optional[int] = Field(default=None, gt=0)


class RateLimitingConfig(BaseSettings):
    """Configuration for the rate limiting subsystem."""

    rule_overrides: Dict[str, RuleOverride] = Field(
        default_factory=dict, alias="RATE_LIMIT_RULE_OVERRIDES"
    )
    purge_interval_seconds: int = Field(3600, ge=1, alias="RATE_LIMITING_PURGE_INTERVAL_SECONDS")
    purge_enabled: Optional[bool] = Field(None, alias="RATE_LIMITING_PURGE_ENABLED")

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="RATE_LIMITING_", extra="ignore", populate_by_name=True
    )

    def purge_active(self, app_env: str) -> bool:
        """Resolve the purge switch, defaulting to the production profile."""
        if self.purge_enabled is None:
            return app_env == "production"
        return self.purge_enabled

    def build_rule_table(self) -> RuleTable:
        """Merge overrides over the default rules.

        A rule name outside the defaults is accepted when the override gives
        both ``window_ms`` and ``max_requests``.

        Raises:
            ConfigurationError: If an override cannot produce a valid rule.
        """
        rules: Dict[str, RateLimitRule] = dict(DEFAULT_RULES)
        for name, override in self.rule_overrides.items():
            base = rules.get(name)
            try:
                if base is None:
                    if override.window_ms is None or override.max_requests is None:
                        raise ConfigurationError(
                            f"Rate limit override for unknown rule {name!r} must set "
                            "window_ms and max_requests"
                        )
                    rules[name] = RateLimitRule(
                        name=name,
                        window_ms=override.window_ms,
                        max_requests=override.max_requests,
                        block_duration_ms=override.block_duration_ms,
                    )
                else:
                    rules[name] = base.with_overrides(
                        window_ms=override.window_ms,
                        max_requests=override.max_requests,
                        block_duration_ms=override.block_duration_ms,
                    )
            except ValueError as exc:
                raise ConfigurationError(f"Invalid rate limit override for {name!r}: {exc}") from exc
        return RuleTable(rules)


def load_rate_limiting_config() -> RateLimitingConfig:
    """Read the configuration, reporting malformed overrides as a startup fault."""
    try:
        return RateLimitingConfig()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid rate limiting configuration: {exc}") from exc
