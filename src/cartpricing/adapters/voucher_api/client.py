"""HTTP client for the voucher validation endpoint."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from cartpricing.adapters.http_resilience import ResilienceConfig, ResilientClient
from cartpricing.adapters.pricing_api import PricingApiError
from cartpricing.config.pricing_api import get_pricing_api_config
from cartpricing.domain.model import Voucher
from cartpricing.domain.ports.vouchers import VoucherRejectedError, VoucherValidator

from .schema import ValidateVoucherRequest, ValidateVoucherResponse, VoucherErrorResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from cartpricing.domain.ports.vouchers import VoucherRequest

log = getLogger(__name__)

VALIDATE_VOUCHER_PATH = "validate-voucher"


def _default_resilience_config() -> ResilienceConfig:
    return get_pricing_api_config().vouchers


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def build_request_body(request: VoucherRequest) -> dict[str, object]:
    check_in, check_out = request.dates.as_iso() if request.dates is not None else (None, None)
    body = ValidateVoucherRequest(
        code=request.code,
        zone_id=request.zone_id,
        item_id=request.unit_id,
        check_in=check_in,
        check_out=check_out,
        total_amount=request.subtotal,
        application_type=str(request.scope),
    )
    return body.model_dump(mode="json", by_alias=True)


@dataclass(slots=True)
class VoucherApiClient:
    """``VoucherValidator`` backed by ``POST validate-voucher``."""

    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> VoucherApiClient:
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

    async def validate(self, request: VoucherRequest) -> Voucher:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        try:
            response = await self._client.post(
                VALIDATE_VOUCHER_PATH, json=build_request_body(request)
            )
        except httpx.HTTPError as exc:
            raise PricingApiError(f"Voucher validation request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and "error" in payload:
            error_payload = VoucherErrorResponse.model_validate(payload)
            log.info("Voucher %s rejected: %s", request.code, error_payload.error)
            raise VoucherRejectedError(error_payload.error, code=request.code)
        if response.is_error or not isinstance(payload, dict):
            raise PricingApiError(
                f"Voucher API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            validated = ValidateVoucherResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise PricingApiError(f"Malformed voucher API response: {exc}") from exc
        if not validated.valid:
            raise VoucherRejectedError("Voucher is not valid", code=request.code)

        voucher = validated.voucher
        return Voucher(
            code=voucher.code,
            id=voucher.id,
            discount_type=voucher.discount_type,
            discount_value=voucher.discount_value,
            discount_amount=validated.discount_amount,
        )


if TYPE_CHECKING:
    _validator_check: VoucherValidator = VoucherApiClient()
