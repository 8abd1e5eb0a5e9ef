"""Domain model for cart items, add-ons and their priceable nodes."""

from __future__ import annotations

from .catalog import (
    AddonSpec,
    ChildItemSpec,
    ItemCatalog,
    ParameterSpec,
    QuantityOutOfRangeError,
    UnknownAddonError,
    UnknownChildError,
    addon_spec,
    minimum_quantities,
    validate_quantities,
)
from .enums import (
    DatePolicy,
    DiscountType,
    MutationOrigin,
    NodeKind,
    PriceStatus,
    PricingMode,
    VoucherScope,
)
from .nodes import (
    AccommodationNode,
    AddonNode,
    AnyNode,
    NodeKey,
    PriceableNode,
    ProductGroupChildNode,
)
from .primitives import ZERO, DateRange, InvalidDateRangeError, to_decimal
from .selection import (
    AddonSelection,
    CartItem,
    ChildSelection,
    MenuPerNight,
    MenuProductSelection,
    ParameterPrice,
    PricedSelection,
    Voucher,
)

__all__ = [
    "ZERO",
    "AccommodationNode",
    "AddonNode",
    "AddonSelection",
    "AddonSpec",
    "AnyNode",
    "CartItem",
    "ChildItemSpec",
    "ChildSelection",
    "DatePolicy",
    "DateRange",
    "DiscountType",
    "InvalidDateRangeError",
    "ItemCatalog",
    "MenuPerNight",
    "MenuProductSelection",
    "MutationOrigin",
    "NodeKey",
    "NodeKind",
    "ParameterPrice",
    "ParameterSpec",
    "PriceStatus",
    "PriceableNode",
    "PricedSelection",
    "PricingMode",
    "ProductGroupChildNode",
    "QuantityOutOfRangeError",
    "UnknownAddonError",
    "UnknownChildError",
    "Voucher",
    "VoucherScope",
    "addon_spec",
    "minimum_quantities",
    "to_decimal",
    "validate_quantities",
]
