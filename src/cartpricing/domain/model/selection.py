"""Mutable selection state edited during a booking session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import PricingMode, PriceStatus
from .primitives import ZERO

if TYPE_CHECKING:
    from datetime import date
    from decimal import Decimal

    from .enums import DiscountType
    from .primitives import DateRange


@dataclass(frozen=True, slots=True)
class Voucher:
    """An applied discount; ``discount_amount`` is resolved once by the validation endpoint."""

    code: str
    id: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal


@dataclass(frozen=True, slots=True)
class ParameterPrice:
    unit_price: Decimal
    pricing_mode: PricingMode = PricingMode.PER_UNIT

    def contribution(self, quantity: int) -> Decimal:
        if self.pricing_mode is PricingMode.PER_GROUP:
            return self.unit_price
        return self.unit_price * quantity


@dataclass(slots=True)
class PricedSelection:
    """Engine-owned computed fields shared by every priceable selection."""

    parameter_quantities: dict[str, int] = field(default_factory=dict[str, int])
    voucher: Voucher | None = None
    total_price: Decimal | None = None
    parameter_pricing: dict[str, ParameterPrice] = field(
        default_factory=dict[str, ParameterPrice]
    )
    price_status: PriceStatus = PriceStatus.PENDING

    @property
    def discount(self) -> Decimal:
        return self.voucher.discount_amount if self.voucher is not None else ZERO


@dataclass(slots=True)
class ChildSelection(PricedSelection):
    item_id: str = ""
    selected_date: date | None = None
    dates: DateRange | None = None


@dataclass(slots=True)
class AddonSelection(PricedSelection):
    addon_id: str = ""
    selected: bool = True
    selected_date: date | None = None
    dates: DateRange | None = None
    child: ChildSelection | None = None


@dataclass(slots=True)
class MenuProductSelection:
    name: str
    price: Decimal
    quantity: int
    voucher: Voucher | None = None

    @property
    def cost(self) -> Decimal:
        return self.price * self.quantity

    @property
    def discount(self) -> Decimal:
        return self.voucher.discount_amount if self.voucher is not None else ZERO


type MenuPerNight = dict[int, dict[str, MenuProductSelection]]


@dataclass(slots=True)
class CartItem:
    """One accommodation line: the root of the selection tree."""

    id: str
    unit_id: str
    zone_id: str
    dates: DateRange | None = None
    accommodation: PricedSelection = field(default_factory=PricedSelection)
    addons: dict[str, AddonSelection] = field(default_factory=dict[str, AddonSelection])
    menu_products: MenuPerNight = field(default_factory=dict[int, dict[str, MenuProductSelection]])

    @property
    def parameter_quantities(self) -> dict[str, int]:
        return self.accommodation.parameter_quantities

    def selected_addons(self) -> list[AddonSelection]:
        return [selection for selection in self.addons.values() if selection.selected]
