"""Pure aggregation of a settled selection tree into an invoiced total."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cartpricing.domain.menu import menu_discount, menu_subtotal
from cartpricing.domain.model import ZERO

if TYPE_CHECKING:
    from decimal import Decimal

    from cartpricing.domain.model import AddonSelection, CartItem


@dataclass(frozen=True, slots=True)
class ComponentTotal:
    """Subtotal and discount of one invoice component; ``net`` never drops below zero."""

    cost: Decimal = ZERO
    discount: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return max(self.cost - self.discount, ZERO)


@dataclass(frozen=True, slots=True)
class AddonLine:
    addon_id: str
    cost: Decimal
    discount: Decimal
    child_id: str | None = None


@dataclass(frozen=True, slots=True)
class TotalsBreakdown:
    accommodation: ComponentTotal = field(default_factory=ComponentTotal)
    addons: ComponentTotal = field(default_factory=ComponentTotal)
    menu: ComponentTotal = field(default_factory=ComponentTotal)
    addon_lines: tuple[AddonLine, ...] = ()

    @property
    def grand_total(self) -> Decimal:
        return self.accommodation.net + self.addons.net + self.menu.net

    def as_dict(self) -> dict[str, str]:
        return {
            "accommodation_cost": str(self.accommodation.cost),
            "accommodation_discount": str(self.accommodation.discount),
            "accommodation_net": str(self.accommodation.net),
            "addon_cost": str(self.addons.cost),
            "addon_discount": str(self.addons.discount),
            "addon_net": str(self.addons.net),
            "menu_cost": str(self.menu.cost),
            "menu_discount": str(self.menu.discount),
            "menu_net": str(self.menu.net),
            "grand_total": str(self.grand_total),
        }


def _addon_line(selection: AddonSelection) -> AddonLine:
    child = selection.child
    if child is None:
        return AddonLine(
            addon_id=selection.addon_id,
            cost=selection.total_price or ZERO,
            discount=selection.discount,
        )
    # a product-group parent is worth exactly its child
    return AddonLine(
        addon_id=selection.addon_id,
        cost=child.total_price or ZERO,
        discount=selection.discount + child.discount,
        child_id=child.item_id,
    )


def aggregate_totals(cart: CartItem) -> TotalsBreakdown:
    """Compute the invoice breakdown of ``cart``.

    Unpriced nodes contribute zero. The function reads the tree only, so
    calling it twice on the same tree returns equal results.
    """

    accommodation = ComponentTotal(
        cost=cart.accommodation.total_price or ZERO,
        discount=cart.accommodation.discount,
    )
    lines = tuple(_addon_line(selection) for selection in cart.selected_addons())
    addons = ComponentTotal(
        cost=sum((line.cost for line in lines), ZERO),
        discount=sum((line.discount for line in lines), ZERO),
    )
    menu = ComponentTotal(
        cost=menu_subtotal(cart.menu_products),
        discount=menu_discount(cart.menu_products),
    )
    return TotalsBreakdown(accommodation=accommodation, addons=addons, menu=menu, addon_lines=lines)
