"""Pydantic models for the JSON cart documents read by the CLI."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cartpricing.domain.model import DatePolicy


class DocumentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WindowPayload(DocumentModel):
    check_in: date = Field(alias="checkIn")
    check_out: date = Field(alias="checkOut")


class ParameterPayload(DocumentModel):
    id: str
    name: str = ""
    min_quantity: int = Field(default=0, alias="minQuantity")
    max_quantity: int | None = Field(default=None, alias="maxQuantity")
    counted_for_menu: bool = Field(default=False, alias="countedForMenu")


class ChildItemPayload(DocumentModel):
    id: str
    name: str = ""
    parameters: list[ParameterPayload] = Field(default_factory=list[ParameterPayload])


class AddonPayload(DocumentModel):
    id: str
    name: str = ""
    date_policy: DatePolicy = Field(default=DatePolicy.INHERIT_PARENT, alias="datePolicy")
    custom_window: WindowPayload | None = Field(default=None, alias="customWindow")
    price_percentage: Decimal = Field(default=Decimal(100), alias="pricePercentage")
    required: bool = False
    parameters: list[ParameterPayload] = Field(default_factory=list[ParameterPayload])
    children: list[ChildItemPayload] = Field(default_factory=list[ChildItemPayload])


class CatalogPayload(DocumentModel):
    unit_id: str = Field(alias="unitId")
    zone_id: str = Field(alias="zoneId")
    parameters: list[ParameterPayload] = Field(default_factory=list[ParameterPayload])
    addons: list[AddonPayload] = Field(default_factory=list[AddonPayload])


class ChildSelectionPayload(DocumentModel):
    id: str
    parameters: dict[str, int] = Field(default_factory=dict[str, int])


class AddonSelectionPayload(DocumentModel):
    id: str
    selected: bool = True
    selected_date: date | None = Field(default=None, alias="selectedDate")
    dates: WindowPayload | None = None
    parameters: dict[str, int] = Field(default_factory=dict[str, int])
    child: ChildSelectionPayload | None = None
    voucher_code: str | None = Field(default=None, alias="voucherCode")


class MenuProductPayload(DocumentModel):
    name: str
    price: Decimal
    quantity: int = 0


class CartPayload(DocumentModel):
    id: str | None = None
    check_in: date | None = Field(default=None, alias="checkIn")
    check_out: date | None = Field(default=None, alias="checkOut")
    parameters: dict[str, int] = Field(default_factory=dict[str, int])
    addons: list[AddonSelectionPayload] = Field(default_factory=list[AddonSelectionPayload])
    voucher_code: str | None = Field(default=None, alias="voucherCode")
    # either ``{night: {product: selection}}`` or the legacy flat ``{product: selection}``
    menu_products: dict[str, dict[str, MenuProductPayload]] | dict[str, MenuProductPayload] = (
        Field(default_factory=dict[str, MenuProductPayload], alias="menuProducts")
    )

    @model_validator(mode="after")
    def _check_dates(self) -> CartPayload:
        if (self.check_in is None) != (self.check_out is None):
            raise ValueError("checkIn and checkOut must be given together")
        return self


class CartDocument(DocumentModel):
    catalog: CatalogPayload
    cart: CartPayload
