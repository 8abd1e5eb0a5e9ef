"""Pydantic models describing the voucher validation payloads."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from cartpricing.domain.model import DiscountType


class VoucherApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ValidateVoucherRequest(VoucherApiModel):
    code: str
    zone_id: str = Field(alias="zoneId")
    item_id: str = Field(alias="itemId")
    check_in: str | None = Field(default=None, alias="checkIn")
    check_out: str | None = Field(default=None, alias="checkOut")
    total_amount: Decimal = Field(alias="totalAmount")
    application_type: str = Field(alias="applicationType")

    @field_serializer("total_amount")
    def _as_number(self, value: Decimal) -> float:
        # the endpoint does arithmetic on this field; send a JSON number
        return float(value)


class VoucherPayload(VoucherApiModel):
    id: str
    code: str
    name: str | None = None
    discount_type: DiscountType = Field(alias="discountType")
    discount_value: Decimal = Field(alias="discountValue")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


class ValidateVoucherResponse(VoucherApiModel):
    valid: bool = False
    voucher: VoucherPayload
    discount_amount: Decimal = Field(alias="discountAmount")
    final_amount: Decimal | None = Field(default=None, alias="finalAmount")


class VoucherErrorResponse(VoucherApiModel):
    error: str
