"""The editable selection tree and its change notifications.

``SelectionTree`` wraps one ``CartItem`` and is the only way to mutate it.
Every mutation is announced to subscribers as a ``SelectionChange`` tagged
with its origin: guest edits arrive as ``user_edit`` while prices written back
by the engine arrive as ``engine_write``. Dirty tracking only ever reacts to
the former.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.domain.dates import (
    check_addon_dates,
    check_addon_day,
    default_addon_dates,
    resolve_addon_dates,
)
from cartpricing.domain.model import (
    AccommodationNode,
    AddonNode,
    AddonSelection,
    CartItem,
    ChildSelection,
    DateRange,
    MutationOrigin,
    NodeKey,
    NodeKind,
    PricedSelection,
    PriceStatus,
    ProductGroupChildNode,
    minimum_quantities,
    validate_quantities,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import date
    from decimal import Decimal

    from cartpricing.domain.model import (
        AddonSpec,
        AnyNode,
        ItemCatalog,
        MenuProductSelection,
        ParameterPrice,
        Voucher,
    )

log = getLogger(__name__)


class SelectionError(ValueError):
    """Raised for edits that do not apply to the current selection."""


@dataclass(frozen=True, slots=True)
class SelectionChange:
    origin: MutationOrigin
    keys: frozenset[NodeKey]
    price_relevant: bool

    @property
    def from_engine(self) -> bool:
        return self.origin is MutationOrigin.ENGINE_WRITE


ChangeListener = Callable[[SelectionChange], None]


@dataclass(frozen=True, slots=True)
class NodePricing:
    """Computed price fields for one node, as written back by the engine."""

    key: NodeKey
    total: Decimal | None
    breakdown: Mapping[str, ParameterPrice]
    status: PriceStatus


def _reset_pricing(selection: PricedSelection) -> None:
    selection.total_price = None
    selection.parameter_pricing = {}
    selection.price_status = PriceStatus.PENDING


class SelectionTree:
    def __init__(self, cart: CartItem, catalog: ItemCatalog) -> None:
        self._cart = cart
        self._catalog = catalog
        self._listeners: list[ChangeListener] = []

    @classmethod
    def new(
        cls,
        catalog: ItemCatalog,
        *,
        cart_item_id: str | None = None,
        dates: DateRange | None = None,
        quantities: Mapping[str, int] | None = None,
    ) -> SelectionTree:
        """Start a cart item with minimum quantities and every required add-on selected."""

        initial = minimum_quantities(catalog.parameters)
        if quantities:
            validate_quantities(quantities, catalog.parameters)
            initial.update(quantities)
        cart = CartItem(
            id=cart_item_id or str(uuid.uuid4()),
            unit_id=catalog.unit_id,
            zone_id=catalog.zone_id,
            dates=dates,
            accommodation=PricedSelection(parameter_quantities=initial),
        )
        tree = cls(cart, catalog)
        tree.initialize_required_addons()
        return tree

    @property
    def cart(self) -> CartItem:
        return self._cart

    @property
    def catalog(self) -> ItemCatalog:
        return self._catalog

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------ reads

    @property
    def accommodation_key(self) -> NodeKey:
        return NodeKey.accommodation(self._cart.id)

    def addon(self, addon_id: str) -> AddonSelection | None:
        return self._cart.addons.get(addon_id)

    def priceable_nodes(self) -> list[AnyNode]:
        """Snapshot every node the oracle prices: accommodation, plain add-ons, children."""

        cart = self._cart
        nodes: list[AnyNode] = [
            AccommodationNode(
                cart_item_id=cart.id,
                unit_id=cart.unit_id,
                dates=cart.dates,
                quantities=dict(cart.parameter_quantities),
            )
        ]
        for selection in cart.selected_addons():
            spec = self._catalog.addon(selection.addon_id)
            if spec.is_product_group:
                child = selection.child
                if child is not None:
                    nodes.append(self._child_node(spec, child))
                continue
            nodes.append(
                AddonNode(
                    unit_id=selection.addon_id,
                    dates=resolve_addon_dates(
                        spec,
                        selected_date=selection.selected_date,
                        dates=selection.dates,
                        accommodation_dates=cart.dates,
                    ),
                    quantities=dict(selection.parameter_quantities),
                    price_factor=spec.price_factor,
                )
            )
        return nodes

    def product_group_parents(self) -> list[AddonSelection]:
        return [
            selection
            for selection in self._cart.selected_addons()
            if self._catalog.addon(selection.addon_id).is_product_group
        ]

    def selection_for(self, key: NodeKey) -> PricedSelection | None:
        if key.kind is NodeKind.ACCOMMODATION:
            return self._cart.accommodation if key.item_id == self._cart.id else None
        if key.kind is NodeKind.ADDON:
            return self._cart.addons.get(key.item_id)
        parent = self._cart.addons.get(key.parent_id or "")
        if parent is None or parent.child is None or parent.child.item_id != key.item_id:
            return None
        return parent.child

    def _child_node(self, spec: AddonSpec, child: ChildSelection) -> ProductGroupChildNode:
        return ProductGroupChildNode(
            parent_id=spec.addon_id,
            unit_id=child.item_id,
            dates=resolve_addon_dates(
                spec,
                selected_date=child.selected_date,
                dates=child.dates,
                accommodation_dates=self._cart.dates,
            ),
            quantities=dict(child.parameter_quantities),
            price_factor=spec.price_factor,
        )

    # -------------------------------------------------------- guest mutations

    def set_dates(self, check_in: date, check_out: date) -> None:
        self._cart.dates = DateRange(check_in, check_out)
        self._emit_price_change(self._date_dependent_keys())

    def clear_dates(self) -> None:
        self._cart.dates = None
        self._emit_price_change(self._date_dependent_keys())

    def set_quantity(self, parameter_id: str, quantity: int) -> None:
        validate_quantities({parameter_id: quantity}, self._catalog.parameters)
        self._cart.accommodation.parameter_quantities[parameter_id] = quantity
        self._emit_price_change({self.accommodation_key})

    def toggle_addon(self, addon_id: str, selected: bool | None = None) -> bool:
        """Flip (or set) the ``selected`` flag of an add-on; return the new state."""

        spec = self._catalog.addon(addon_id)
        current = self._cart.addons.get(addon_id)
        target = not (current is not None and current.selected) if selected is None else selected
        if current is None and not target:
            return False
        if current is not None and current.selected == target:
            return target
        if not target and spec.required:
            raise SelectionError(f"Add-on {addon_id!r} is required and cannot be removed")

        keys = {NodeKey.addon(addon_id)}
        if current is None:
            self._cart.addons[addon_id] = self._new_addon_selection(spec)
        else:
            current.selected = target
            _reset_pricing(current)
            if current.child is not None:
                _reset_pricing(current.child)
                keys.add(NodeKey.child(addon_id, current.child.item_id))
        log.debug("Add-on %s %s", addon_id, "selected" if target else "deselected")
        self._emit_price_change(keys)
        return target

    def set_addon_quantity(self, addon_id: str, parameter_id: str, quantity: int) -> None:
        spec = self._catalog.addon(addon_id)
        selection = self._selected(addon_id)
        if spec.is_product_group:
            raise SelectionError(f"{addon_id!r} is a product group; set quantities on its child")
        validate_quantities({parameter_id: quantity}, spec.parameters)
        selection.parameter_quantities[parameter_id] = quantity
        self._emit_price_change({NodeKey.addon(addon_id)})

    def set_addon_date(self, addon_id: str, day: date) -> None:
        spec = self._catalog.addon(addon_id)
        selection = self._selected(addon_id)
        check_addon_day(spec, day, self._cart.dates)
        selection.selected_date = day
        keys = {NodeKey.addon(addon_id)}
        if selection.child is not None:
            selection.child.selected_date = day
            keys.add(NodeKey.child(addon_id, selection.child.item_id))
        self._emit_price_change(keys)

    def set_addon_dates(self, addon_id: str, dates: DateRange | None) -> None:
        spec = self._catalog.addon(addon_id)
        selection = self._selected(addon_id)
        if dates is not None:
            check_addon_dates(spec, dates)
        selection.dates = dates
        keys = {NodeKey.addon(addon_id)}
        if selection.child is not None:
            selection.child.dates = dates
            keys.add(NodeKey.child(addon_id, selection.child.item_id))
        self._emit_price_change(keys)

    def select_child(
        self,
        addon_id: str,
        child_id: str,
        quantities: Mapping[str, int] | None = None,
    ) -> ChildSelection:
        """Select the single child of a product group, replacing any previous one."""

        spec = self._catalog.addon(addon_id)
        selection = self._selected(addon_id)
        child_spec = spec.child(child_id)
        initial = minimum_quantities(child_spec.parameters)
        if quantities:
            validate_quantities(quantities, child_spec.parameters)
            initial.update(quantities)

        keys = {NodeKey.addon(addon_id), NodeKey.child(addon_id, child_id)}
        previous = selection.child
        if previous is not None and previous.item_id == child_id:
            # re-selecting the current child keeps its settled pricing
            if previous.parameter_quantities != initial:
                previous.parameter_quantities = initial
                self._emit_price_change(keys)
            return previous
        if previous is not None:
            keys.add(NodeKey.child(addon_id, previous.item_id))

        child = ChildSelection(
            item_id=child_id,
            parameter_quantities=initial,
            selected_date=selection.selected_date,
            dates=selection.dates,
        )
        selection.child = child
        _reset_pricing(selection)
        self._emit_price_change(keys)
        return child

    def set_child_quantity(self, addon_id: str, parameter_id: str, quantity: int) -> None:
        spec = self._catalog.addon(addon_id)
        child = self._selected_child(addon_id)
        validate_quantities({parameter_id: quantity}, spec.child(child.item_id).parameters)
        child.parameter_quantities[parameter_id] = quantity
        self._emit_price_change({NodeKey.addon(addon_id), NodeKey.child(addon_id, child.item_id)})

    def clear_child(self, addon_id: str) -> None:
        selection = self._selected(addon_id)
        child = selection.child
        if child is None:
            return
        selection.child = None
        _reset_pricing(selection)
        self._emit_price_change({NodeKey.addon(addon_id), NodeKey.child(addon_id, child.item_id)})

    def apply_voucher(self, key: NodeKey, voucher: Voucher) -> None:
        target = self._voucher_target(key)
        target.voucher = voucher
        self._emit(MutationOrigin.USER_EDIT, {key}, price_relevant=False)

    def remove_voucher(self, key: NodeKey) -> None:
        target = self._voucher_target(key)
        if target.voucher is None:
            return
        target.voucher = None
        self._emit(MutationOrigin.USER_EDIT, {key}, price_relevant=False)

    def set_menu_product(
        self,
        night: int,
        product_id: str,
        selection: MenuProductSelection | None,
    ) -> None:
        nights = self._cart.menu_products
        if selection is None or selection.quantity <= 0:
            night_products = nights.get(night)
            if night_products is not None:
                night_products.pop(product_id, None)
        else:
            nights.setdefault(night, {})[product_id] = selection
        self._emit(MutationOrigin.USER_EDIT, set(), price_relevant=False)

    def initialize_required_addons(self) -> list[str]:
        """Select every required add-on that has no selection yet."""

        added: list[str] = []
        for spec in self._catalog.addons.values():
            if spec.required and spec.addon_id not in self._cart.addons:
                self._cart.addons[spec.addon_id] = self._new_addon_selection(spec)
                added.append(spec.addon_id)
        if added:
            self._emit_price_change({NodeKey.addon(addon_id) for addon_id in added})
        return added

    # --------------------------------------------------------- engine writes

    def write_pricing(self, pricings: Iterable[NodePricing]) -> bool:
        """Store engine-computed prices; emits a single ``engine_write`` change if anything moved."""

        changed: set[NodeKey] = set()
        for pricing in pricings:
            target = self.selection_for(pricing.key)
            if target is None:
                continue
            breakdown = dict(pricing.breakdown)
            if (
                target.total_price == pricing.total
                and target.parameter_pricing == breakdown
                and target.price_status is pricing.status
            ):
                continue
            target.total_price = pricing.total
            target.parameter_pricing = breakdown
            target.price_status = pricing.status
            changed.add(pricing.key)
        if changed:
            self._emit(MutationOrigin.ENGINE_WRITE, changed, price_relevant=False)
        return bool(changed)

    # ---------------------------------------------------------------- helpers

    def _new_addon_selection(self, spec: AddonSpec) -> AddonSelection:
        selected_date, dates = default_addon_dates(spec, self._cart.dates)
        quantities = {} if spec.is_product_group else minimum_quantities(spec.parameters)
        return AddonSelection(
            addon_id=spec.addon_id,
            selected=True,
            parameter_quantities=quantities,
            selected_date=selected_date,
            dates=dates,
        )

    def _selected(self, addon_id: str) -> AddonSelection:
        selection = self._cart.addons.get(addon_id)
        if selection is None or not selection.selected:
            raise SelectionError(f"Add-on {addon_id!r} is not selected")
        return selection

    def _selected_child(self, addon_id: str) -> ChildSelection:
        child = self._selected(addon_id).child
        if child is None:
            raise SelectionError(f"Product group {addon_id!r} has no child selected")
        return child

    def _voucher_target(self, key: NodeKey) -> PricedSelection:
        target = self.selection_for(key)
        if target is None:
            raise SelectionError(f"No selection for {key}")
        return target

    def _date_dependent_keys(self) -> set[NodeKey]:
        keys = {self.accommodation_key}
        for selection in self._cart.selected_addons():
            keys.add(NodeKey.addon(selection.addon_id))
            if selection.child is not None:
                keys.add(NodeKey.child(selection.addon_id, selection.child.item_id))
        return keys

    def _emit_price_change(self, keys: Iterable[NodeKey]) -> None:
        self._emit(MutationOrigin.USER_EDIT, keys, price_relevant=True)

    def _emit(
        self,
        origin: MutationOrigin,
        keys: Iterable[NodeKey],
        *,
        price_relevant: bool,
    ) -> None:
        change = SelectionChange(origin=origin, keys=frozenset(keys), price_relevant=price_relevant)
        for listener in tuple(self._listeners):
            listener(change)
