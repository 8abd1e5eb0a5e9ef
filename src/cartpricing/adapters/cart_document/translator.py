"""Build catalogues and selection trees from cart documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.domain.menu import migrate_menu_products
from cartpricing.domain.model import (
    ChildItemSpec,
    DateRange,
    ItemCatalog,
    MenuProductSelection,
    NodeKey,
    ParameterSpec,
    addon_spec,
)
from cartpricing.domain.selection_tree import SelectionTree

from .schema import CartDocument, MenuProductPayload

if TYPE_CHECKING:
    from pathlib import Path

    from cartpricing.domain.model import MenuPerNight

    from .schema import (
        AddonSelectionPayload,
        CartPayload,
        CatalogPayload,
        ParameterPayload,
        WindowPayload,
    )

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoadedCart:
    """A ready-to-price tree plus the voucher codes the document asks for."""

    tree: SelectionTree
    voucher_codes: dict[NodeKey, str] = field(default_factory=dict["NodeKey", str])


def _parameter(payload: ParameterPayload) -> ParameterSpec:
    return ParameterSpec(
        id=payload.id,
        name=payload.name,
        min_quantity=payload.min_quantity,
        max_quantity=payload.max_quantity,
        counted_for_menu=payload.counted_for_menu,
    )


def _window(payload: WindowPayload | None) -> DateRange | None:
    if payload is None:
        return None
    return DateRange(payload.check_in, payload.check_out)


def build_catalog(payload: CatalogPayload) -> ItemCatalog:
    addons = [
        addon_spec(
            addon.id,
            name=addon.name,
            date_policy=addon.date_policy,
            custom_window=_window(addon.custom_window),
            price_percentage=addon.price_percentage,
            required=addon.required,
            parameters=[_parameter(parameter) for parameter in addon.parameters],
            children=[
                ChildItemSpec.build(
                    child.id,
                    [_parameter(parameter) for parameter in child.parameters],
                    name=child.name,
                )
                for child in addon.children
            ],
        )
        for addon in payload.addons
    ]
    return ItemCatalog.build(
        unit_id=payload.unit_id,
        zone_id=payload.zone_id,
        parameters=[_parameter(parameter) for parameter in payload.parameters],
        addons=addons,
    )


def _menu(payload: CartPayload, nights: int) -> MenuPerNight:
    raw = payload.menu_products
    if not raw:
        return {}
    if all(isinstance(value, MenuProductPayload) for value in raw.values()):
        flat = {
            product_id: _menu_product(product)
            for product_id, product in raw.items()
            if isinstance(product, MenuProductPayload)
        }
        log.debug("Migrating flat menu selection onto %d night(s)", nights)
        return migrate_menu_products(flat, nights)
    menu: MenuPerNight = {}
    for night, products in raw.items():
        if isinstance(products, MenuProductPayload):
            raise ValueError("menuProducts mixes per-night and flat entries")
        menu[int(night)] = {
            product_id: _menu_product(product) for product_id, product in products.items()
        }
    return menu


def _menu_product(payload: MenuProductPayload) -> MenuProductSelection:
    return MenuProductSelection(name=payload.name, price=payload.price, quantity=payload.quantity)


def _apply_addon(tree: SelectionTree, payload: AddonSelectionPayload) -> None:
    if not payload.selected:
        tree.toggle_addon(payload.id, selected=False)
        return
    tree.toggle_addon(payload.id, selected=True)
    if payload.selected_date is not None:
        tree.set_addon_date(payload.id, payload.selected_date)
    if payload.dates is not None:
        tree.set_addon_dates(payload.id, _window(payload.dates))
    for parameter_id, quantity in payload.parameters.items():
        tree.set_addon_quantity(payload.id, parameter_id, quantity)
    if payload.child is not None:
        tree.select_child(payload.id, payload.child.id, payload.child.parameters)


def build_tree(document: CartDocument) -> LoadedCart:
    """Replay a document through ``SelectionTree`` edits so every rule is enforced."""

    catalog = build_catalog(document.catalog)
    cart = document.cart
    dates = None
    if cart.check_in is not None and cart.check_out is not None:
        dates = DateRange(cart.check_in, cart.check_out)
    tree = SelectionTree.new(
        catalog,
        cart_item_id=cart.id,
        dates=dates,
        quantities=cart.parameters,
    )
    voucher_codes: dict[NodeKey, str] = {}
    if cart.voucher_code:
        voucher_codes[tree.accommodation_key] = cart.voucher_code
    for addon in cart.addons:
        _apply_addon(tree, addon)
        if addon.selected and addon.voucher_code:
            voucher_codes[NodeKey.addon(addon.id)] = addon.voucher_code

    nights = dates.nights if dates is not None else 0
    for night, products in _menu(cart, nights).items():
        for product_id, product in products.items():
            tree.set_menu_product(night, product_id, product)
    return LoadedCart(tree=tree, voucher_codes=voucher_codes)


def load_cart_document(path: Path) -> LoadedCart:
    return build_tree(CartDocument.model_validate_json(path.read_bytes()))
