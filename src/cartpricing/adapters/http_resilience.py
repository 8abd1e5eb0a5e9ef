"""Async HTTP client shared by the booking API adapters.

Each client stacks three layers around ``httpx.AsyncClient``: an
``httpx-retries`` transport, an optional ``hishel`` response cache and an
optional ``aiolimiter`` limiter that every request waits on before it is sent.
"""

from __future__ import annotations

import json
import time
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from cartpricing.common.storage import get_http_cache_path
from cartpricing.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    ShouldCacheHook,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

__all__ = [
    "CacheConfig",
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
    "build_retry",
]

log = getLogger(__name__)

CACHE_BACKENDS = frozenset({"sqlite", "memory"})


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """One booking API endpoint family behind retry, cache and rate-limit layers.

    ``get`` and ``post`` return the raw ``httpx.Response``; status handling and
    payload parsing stay with the adapter that owns the endpoint.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = _build_limiter(config.ratelimit)
        self._client = _build_client(config)

    @property
    def name(self) -> str:
        return self.config.name

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self, url: str, *, params: Mapping[str, str | int | float] | None = None
    ) -> httpx.Response:
        return await self._send("GET", url, params=params)

    async def post(self, url: str, *, json: Any = None) -> httpx.Response:  # noqa: ANN401
        return await self._send("POST", url, json=json)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str | int | float] | None = None,
        json: Any = None,  # noqa: ANN401
    ) -> httpx.Response:
        if self._limiter is not None:
            await self._limiter.acquire()
        started = time.perf_counter()
        response = await self._client.request(method, url, params=params, json=json)
        log.debug(
            "%s %s %s -> %d in %.0f ms",
            self.name,
            method,
            url,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


class _JsonPayloadFilter(BaseFilter[HishelCacheResponse]):
    """Only store responses whose decoded JSON body passes ``predicate``."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if not body:
            return False
        try:
            payload = json.loads(body)
        except ValueError:
            return False
        return bool(self._predicate(payload))


def _build_limiter(ratelimit: RateLimit | None) -> AsyncLimiter | None:
    if ratelimit is None:
        return None
    return AsyncLimiter(ratelimit.max_calls, ratelimit.per_seconds)


def _build_client(config: ResilienceConfig) -> httpx.AsyncClient:
    transport = RetryTransport(retry=build_retry(config.retry))
    options: dict[str, Any] = {
        "timeout": config.timeout_seconds,
        "transport": transport,
        "base_url": config.base_url or "",
    }
    if config.default_headers:
        options["headers"] = dict(config.default_headers)

    cache = config.cache
    if cache is None or not cache.enabled:
        return httpx.AsyncClient(**options)

    if cache.backend not in CACHE_BACKENDS:
        msg = f"Unsupported cache backend: {cache.backend}"
        raise ValueError(msg)
    if cache.backend == "sqlite":
        database_path = cache.sqlite_path or str(get_http_cache_path())
        log.debug("%s responses cached in %s", config.name, database_path)
    else:
        database_path = ":memory:"
    storage = AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=cache.default_ttl_seconds,
        refresh_ttl_on_access=cache.refresh_ttl_on_access,
    )
    policy = (
        FilterPolicy(response_filters=[_JsonPayloadFilter(cache.should_cache)])
        if cache.should_cache is not None
        else None
    )
    return AsyncCacheClient(**options, storage=storage, policy=policy)
