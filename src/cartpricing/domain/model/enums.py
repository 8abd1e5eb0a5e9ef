"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class PricingMode(StrEnum):
    PER_UNIT = "per_unit"
    PER_GROUP = "per_group"


class DatePolicy(StrEnum):
    INHERIT_PARENT = "inherit_parent"
    CUSTOM = "custom"
    FREE = "free"


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class NodeKind(StrEnum):
    """Discriminator for priceable nodes in the selection tree."""

    ACCOMMODATION = "accommodation"
    ADDON = "addon"
    CHILD = "child"


class PriceStatus(StrEnum):
    PENDING = "pending"
    OK = "ok"
    # required inputs missing; shown as a neutral placeholder
    UNAVAILABLE = "unavailable"
    # oracle call failed; shown as a non-blocking notice
    FAILED = "failed"


class MutationOrigin(StrEnum):
    USER_EDIT = "user_edit"
    ENGINE_WRITE = "engine_write"


class VoucherScope(StrEnum):
    ALL = "all"
    ACCOMMODATION = "accommodation"
    # add-ons are "common items" on the validation endpoint
    ADDON = "common_item"
    MENU_ONLY = "menu_only"
