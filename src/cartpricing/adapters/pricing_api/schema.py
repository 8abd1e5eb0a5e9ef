"""Pydantic models describing the pricing API payloads."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PricingApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PricingTotals(PricingApiModel):
    accommodation_cost: Decimal = Field(default=Decimal(0), alias="accommodationCost")
    voucher_discount: Decimal = Field(default=Decimal(0), alias="voucherDiscount")
    grand_total: Decimal = Field(default=Decimal(0), alias="grandTotal")


class CalculatePricingResponse(PricingApiModel):
    """``GET calculate-pricing`` body; ``parameterPricing`` holds the price for the whole window."""

    nights: int = 0
    parameter_pricing: dict[str, Decimal] = Field(
        default_factory=dict[str, Decimal], alias="parameterPricing"
    )
    parameter_pricing_modes: dict[str, str] = Field(
        default_factory=dict[str, str], alias="parameterPricingModes"
    )
    totals: PricingTotals | None = None

    @field_validator("parameter_pricing", mode="before")
    @classmethod
    def _drop_nulls(cls, value: object) -> object:
        if isinstance(value, dict):
            return {key: price for key, price in value.items() if price is not None}
        return value


class ErrorResponse(PricingApiModel):
    error: str
    details: str | None = None
