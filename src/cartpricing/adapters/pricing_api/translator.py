"""Translate pricing API payloads into domain quotes."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from cartpricing.domain.model import PricingMode
from cartpricing.domain.ports.pricing import PriceQuote

if TYPE_CHECKING:
    from cartpricing.domain.ports.pricing import PriceRequest

    from .schema import CalculatePricingResponse

log = getLogger(__name__)

# the booking API still reports per-unit prices as "per_person"
_MODE_ALIASES: dict[str, PricingMode] = {
    "per_unit": PricingMode.PER_UNIT,
    "per_person": PricingMode.PER_UNIT,
    "per_group": PricingMode.PER_GROUP,
}


def parse_pricing_mode(raw: str | None) -> PricingMode:
    if raw is None:
        return PricingMode.PER_UNIT
    mode = _MODE_ALIASES.get(raw.strip().lower())
    if mode is None:
        log.warning("Unknown pricing mode %r; treating it as per_unit", raw)
        return PricingMode.PER_UNIT
    return mode


def pricing_query(request: PriceRequest) -> httpx.QueryParams:
    check_in, check_out = request.dates.as_iso()
    params: dict[str, str | int] = {
        "itemId": request.unit_id,
        "checkIn": check_in,
        "checkOut": check_out,
    }
    for parameter_id, quantity in sorted(request.quantities.items()):
        if quantity > 0:
            params[f"param_{parameter_id}"] = quantity
    return httpx.QueryParams(params)


def quote_from_response(response: CalculatePricingResponse) -> PriceQuote:
    modes = {
        parameter_id: parse_pricing_mode(response.parameter_pricing_modes.get(parameter_id))
        for parameter_id in response.parameter_pricing
    }
    return PriceQuote(unit_prices=dict(response.parameter_pricing), pricing_modes=modes)
