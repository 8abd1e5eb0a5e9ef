"""Ports implemented by adapters outside the domain."""

from __future__ import annotations

from .persistence import CartItemSaver
from .pricing import PriceQuote, PriceRequest, PricingOracle, PricingOracleError
from .vouchers import VoucherRejectedError, VoucherRequest, VoucherValidator

__all__ = [
    "CartItemSaver",
    "PriceQuote",
    "PriceRequest",
    "PricingOracle",
    "PricingOracleError",
    "VoucherRejectedError",
    "VoucherRequest",
    "VoucherValidator",
]
