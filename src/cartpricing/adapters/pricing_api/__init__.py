"""Public interface for the pricing API adapter."""

from __future__ import annotations

from .client import PricingApiClient, PricingApiError
from .schema import CalculatePricingResponse, ErrorResponse
from .translator import parse_pricing_mode, pricing_query, quote_from_response

__all__ = [
    "CalculatePricingResponse",
    "ErrorResponse",
    "PricingApiClient",
    "PricingApiError",
    "parse_pricing_mode",
    "pricing_query",
    "quote_from_response",
]
