"""HTTP client for the booking pricing API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from cartpricing.adapters.http_resilience import ResilienceConfig, ResilientClient
from cartpricing.config.pricing_api import get_pricing_api_config
from cartpricing.domain.ports.pricing import PricingOracle, PricingOracleError

from .schema import CalculatePricingResponse, ErrorResponse
from .translator import pricing_query, quote_from_response

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from cartpricing.domain.ports.pricing import PriceQuote, PriceRequest

log = getLogger(__name__)

CALCULATE_PRICING_PATH = "calculate-pricing"


def _default_resilience_config() -> ResilienceConfig:
    return get_pricing_api_config().pricing


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class PricingApiError(PricingOracleError):
    """Raised when the pricing API fails or answers with an error payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class PricingApiClient:
    """``PricingOracle`` backed by ``GET calculate-pricing``.

    One underlying HTTP client is opened lazily and reused until ``aclose``.
    """

    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> PricingApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def quote(self, request: PriceRequest) -> PriceQuote:
        client = self._ensure_client()
        params = pricing_query(request)
        try:
            response = await client.get(CALCULATE_PRICING_PATH, params=params)
        except httpx.HTTPError as exc:
            raise PricingApiError(f"Pricing request for {request.unit_id} failed: {exc}") from exc
        return quote_from_response(self._parse(response))

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        return self._client

    def _parse(self, response: httpx.Response) -> CalculatePricingResponse:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and "error" in payload:
            error_payload = ErrorResponse.model_validate(payload)
            log.debug(f"Pricing API error {response.status_code}: {error_payload.error}")
            raise PricingApiError(error_payload.error, status_code=response.status_code)
        if response.is_error:
            raise PricingApiError(
                f"Pricing API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise PricingApiError("Unexpected pricing API response payload")

        try:
            return CalculatePricingResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise PricingApiError(f"Malformed pricing API response: {exc}") from exc


if TYPE_CHECKING:
    _oracle_check: PricingOracle = PricingApiClient()
