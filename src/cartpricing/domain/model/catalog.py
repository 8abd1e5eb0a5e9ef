"""Read-only catalogue of what a cart item may contain.

The catalogue describes an accommodation unit, its quantified parameters and
the add-ons on offer. Sessions receive it as input and never mutate it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from .enums import DatePolicy
from .primitives import DateRange

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class QuantityOutOfRangeError(ValueError):
    """Raised when a quantity falls outside a parameter's declared bounds."""


class UnknownAddonError(KeyError):
    """Raised when an add-on id is not offered by the catalogue."""


class UnknownChildError(KeyError):
    """Raised when a child item is not part of a product group."""


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    id: str
    name: str = ""
    min_quantity: int = 0
    max_quantity: int | None = None
    counted_for_menu: bool = False

    def validate(self, quantity: int) -> None:
        if quantity < self.min_quantity:
            raise QuantityOutOfRangeError(
                f"{self.id}: quantity {quantity} is below the minimum {self.min_quantity}"
            )
        if self.max_quantity is not None and quantity > self.max_quantity:
            raise QuantityOutOfRangeError(
                f"{self.id}: quantity {quantity} exceeds the maximum {self.max_quantity}"
            )


def _index(parameters: Iterable[ParameterSpec]) -> dict[str, ParameterSpec]:
    return {parameter.id: parameter for parameter in parameters}


def validate_quantities(
    quantities: Mapping[str, int],
    parameters: Mapping[str, ParameterSpec],
) -> None:
    for parameter_id, quantity in quantities.items():
        spec = parameters.get(parameter_id)
        if spec is None:
            raise QuantityOutOfRangeError(f"Unknown parameter {parameter_id!r}")
        spec.validate(quantity)


def minimum_quantities(parameters: Mapping[str, ParameterSpec]) -> dict[str, int]:
    return {parameter_id: spec.min_quantity for parameter_id, spec in parameters.items()}


@dataclass(frozen=True, slots=True)
class ChildItemSpec:
    """One selectable item inside a product group."""

    item_id: str
    name: str = ""
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict[str, ParameterSpec])

    @classmethod
    def build(cls, item_id: str, parameters: Iterable[ParameterSpec], name: str = "") -> ChildItemSpec:
        return cls(item_id=item_id, name=name, parameters=_index(parameters))


@dataclass(frozen=True, slots=True)
class AddonSpec:
    addon_id: str
    name: str = ""
    date_policy: DatePolicy = DatePolicy.INHERIT_PARENT
    custom_window: DateRange | None = None
    price_percentage: Decimal = Decimal(100)
    required: bool = False
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict[str, ParameterSpec])
    children: Mapping[str, ChildItemSpec] = field(default_factory=dict[str, ChildItemSpec])

    @property
    def is_product_group(self) -> bool:
        return bool(self.children)

    @property
    def price_factor(self) -> Decimal:
        return self.price_percentage / 100

    def child(self, child_id: str) -> ChildItemSpec:
        try:
            return self.children[child_id]
        except KeyError:
            raise UnknownChildError(
                f"{child_id!r} is not part of product group {self.addon_id!r}"
            ) from None


@dataclass(frozen=True, slots=True)
class ItemCatalog:
    unit_id: str
    zone_id: str
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict[str, ParameterSpec])
    addons: Mapping[str, AddonSpec] = field(default_factory=dict[str, AddonSpec])

    @classmethod
    def build(
        cls,
        *,
        unit_id: str,
        zone_id: str,
        parameters: Iterable[ParameterSpec] = (),
        addons: Iterable[AddonSpec] = (),
    ) -> ItemCatalog:
        return cls(
            unit_id=unit_id,
            zone_id=zone_id,
            parameters=_index(parameters),
            addons={addon.addon_id: addon for addon in addons},
        )

    def addon(self, addon_id: str) -> AddonSpec:
        try:
            return self.addons[addon_id]
        except KeyError:
            raise UnknownAddonError(f"Add-on {addon_id!r} is not offered for {self.unit_id}") from None


def addon_spec(
    addon_id: str,
    *,
    parameters: Iterable[ParameterSpec] = (),
    children: Iterable[ChildItemSpec] = (),
    **kwargs: object,
) -> AddonSpec:
    """Convenience constructor indexing parameter and child specs by id."""

    return AddonSpec(
        addon_id=addon_id,
        parameters=_index(parameters),
        children={child.item_id: child for child in children},
        **kwargs,  # type: ignore[arg-type]
    )
