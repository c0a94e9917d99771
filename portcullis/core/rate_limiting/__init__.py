from .config import RateLimitingConfig, RuleOverride, load_rate_limiting_config

__all__ = ["RateLimitingConfig", "RuleOverride", "load_rate_limiting_config"]
