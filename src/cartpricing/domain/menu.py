"""Menu selections: per-night cost, discounts and the menu-eligible guest count."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from cartpricing.domain.model import ZERO

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from decimal import Decimal

    from cartpricing.domain.model import MenuPerNight, MenuProductSelection, ParameterSpec


def _selections(menu: MenuPerNight) -> Iterable[MenuProductSelection]:
    for night_products in menu.values():
        yield from night_products.values()


def menu_subtotal(menu: MenuPerNight) -> Decimal:
    """Undiscounted menu cost summed across every night."""

    return sum((selection.cost for selection in _selections(menu)), ZERO)


def menu_discount(menu: MenuPerNight) -> Decimal:
    """Sum of the per-product voucher discounts across every night."""

    return sum((selection.discount for selection in _selections(menu)), ZERO)


def migrate_menu_products(
    flat_products: Mapping[str, MenuProductSelection], nights: int
) -> MenuPerNight:
    """Replicate a flat (pre per-night) menu selection onto every night of the stay."""

    return {night: dict(flat_products) for night in range(max(nights, 0))}


@lru_cache(maxsize=256)
def _counted_guests(
    quantities: frozenset[tuple[str, int]], counted_ids: frozenset[str]
) -> int:
    return sum(quantity for parameter_id, quantity in quantities if parameter_id in counted_ids)


def counted_guests(
    quantities: Mapping[str, int], parameters: Mapping[str, ParameterSpec]
) -> int:
    """Guests that count towards menu combos, from parameters flagged ``counted_for_menu``.

    This is a derived read memoized on its inputs; it never takes part in a
    fetch cycle.
    """

    counted_ids = frozenset(pid for pid, spec in parameters.items() if spec.counted_for_menu)
    positive = frozenset((pid, qty) for pid, qty in quantities.items() if qty > 0)
    return _counted_guests(positive, counted_ids)
