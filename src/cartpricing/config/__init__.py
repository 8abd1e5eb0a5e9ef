"""Application configuration helpers."""

from __future__ import annotations

from cartpricing.common.logging import configure_logging

from .engine import EngineConfig, get_engine_config
from .env import env_float, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import NO_RETRY, CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .pricing_api import PricingApiConfig, get_pricing_api_config

__all__ = [
    "NO_RETRY",
    "CacheConfig",
    "ConfigurationError",
    "EngineConfig",
    "MissingConfigurationError",
    "PricingApiConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "env_float",
    "get_engine_config",
    "get_pricing_api_config",
    "require_env_var",
    "require_env_vars",
]
