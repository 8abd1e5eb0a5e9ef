"""Pricing and voucher API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cartpricing import __version__

from .env import env_float, require_env_vars
from .errors import ConfigurationError
from .http_resilience import NO_RETRY, CacheConfig, RateLimit, ResilienceConfig

PRICING_API_TIMEOUT_SECONDS = 10.0
PRICING_CACHE_TTL_SECONDS = 60.0
PRICING_API_MAX_CALLS_PER_SECOND = 20.0
PRICING_CACHE_BACKENDS = ("memory", "sqlite", "off")
DEFAULT_HEADERS = {"Accept": "application/json", "User-Agent": f"cartpricing/{__version__}"}


def _is_price_payload(payload: object) -> bool:
    # error payloads are never cached
    return isinstance(payload, dict) and "error" not in payload


def _pricing_cache() -> CacheConfig | None:
    backend = (os.getenv("PRICING_API_CACHE") or "memory").strip().lower()
    if backend not in PRICING_CACHE_BACKENDS:
        choices = ", ".join(PRICING_CACHE_BACKENDS)
        raise ConfigurationError(
            f"PRICING_API_CACHE must be one of {choices}, got {backend!r}",
            variable="PRICING_API_CACHE",
        )
    if backend == "off":
        return None
    # sqlite keeps quotes across CLI runs, in the data directory
    return CacheConfig(
        backend="sqlite" if backend == "sqlite" else "memory",
        default_ttl_seconds=PRICING_CACHE_TTL_SECONDS,
        should_cache=_is_price_payload,
    )


@dataclass(frozen=True, slots=True)
class PricingApiConfig:
    """Holds the booking API endpoints used for pricing and voucher validation."""

    base_url: str
    pricing: ResilienceConfig
    vouchers: ResilienceConfig


def get_pricing_api_config() -> PricingApiConfig:
    values = require_env_vars(("PRICING_API_BASE_URL",))
    base_url = values["PRICING_API_BASE_URL"].rstrip("/") + "/"
    timeout = env_float("PRICING_API_TIMEOUT_SECONDS", PRICING_API_TIMEOUT_SECONDS)
    max_calls = env_float("PRICING_API_MAX_CALLS_PER_SECOND", PRICING_API_MAX_CALLS_PER_SECOND)
    ratelimit = RateLimit(max_calls=max(int(max_calls), 1), per_seconds=1.0)

    pricing = ResilienceConfig(
        name="pricing",
        base_url=base_url,
        timeout_seconds=timeout,
        retry=NO_RETRY,
        ratelimit=ratelimit,
        default_headers=DEFAULT_HEADERS,
        cache=_pricing_cache(),
    )
    # validation depends on live usage counters; never cache it
    vouchers = ResilienceConfig(
        name="vouchers",
        base_url=base_url,
        timeout_seconds=timeout,
        retry=NO_RETRY,
        ratelimit=ratelimit,
        default_headers=DEFAULT_HEADERS,
        cache=None,
    )
    return PricingApiConfig(base_url=base_url, pricing=pricing, vouchers=vouchers)
