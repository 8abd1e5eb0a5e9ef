"""Port for the external pricing oracle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from decimal import Decimal

    from cartpricing.domain.model import DateRange, PricingMode


class PricingOracleError(RuntimeError):
    """Raised by oracle implementations when a unit cannot be priced."""


@dataclass(frozen=True, slots=True)
class PriceRequest:
    unit_id: str
    dates: DateRange
    quantities: Mapping[str, int]


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Unit price and pricing mode per parameter for the requested window."""

    unit_prices: Mapping[str, Decimal] = field(default_factory=dict)
    pricing_modes: Mapping[str, PricingMode] = field(default_factory=dict)


@runtime_checkable
class PricingOracle(Protocol):
    """Black-box tariff lookup: dates and quantities in, unit prices out."""

    async def quote(self, request: PriceRequest) -> PriceQuote: ...


__all__ = ["PriceQuote", "PriceRequest", "PricingOracle", "PricingOracleError"]
