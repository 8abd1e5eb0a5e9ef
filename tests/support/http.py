"""Mock-transport client factories for the HTTP adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from cartpricing.adapters.http_resilience import ResilienceConfig, ResilientClient
from cartpricing.config.http_resilience import NO_RETRY

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://booking.test/api/"


def resilience(name: str) -> ResilienceConfig:
    return ResilienceConfig(name=name, base_url=BASE_URL, retry=NO_RETRY, cache=None)


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(config: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(config)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=config.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory
