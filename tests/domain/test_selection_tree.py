from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from cartpricing.domain.model import (
    AccommodationNode,
    AddonNode,
    DateRange,
    DiscountType,
    MenuProductSelection,
    MutationOrigin,
    NodeKey,
    ParameterPrice,
    PriceStatus,
    ProductGroupChildNode,
    QuantityOutOfRangeError,
    UnknownAddonError,
    UnknownChildError,
    Voucher,
)
from cartpricing.domain.selection_tree import (
    NodePricing,
    SelectionChange,
    SelectionError,
    SelectionTree,
)
from tests.support.carts import STAY, full_catalog, make_tree


def _record(tree: SelectionTree) -> list[SelectionChange]:
    changes: list[SelectionChange] = []
    tree.subscribe(changes.append)
    return changes


def test_new_tree_selects_required_addons_with_defaults() -> None:
    tree = make_tree(full_catalog())

    breakfast = tree.addon("breakfast")
    assert breakfast is not None
    assert breakfast.selected
    assert breakfast.selected_date == STAY.check_in
    assert breakfast.parameter_quantities == {"set": 1}
    assert tree.cart.parameter_quantities == {"adult": 2, "child": 0, "infant": 0}
    assert tree.addon("kayak") is None


def test_priceable_nodes_cover_accommodation_addons_and_children() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("tour")
    tree.toggle_addon("dinner")
    tree.select_child("dinner", "bbq", {"guest": 2})

    nodes = tree.priceable_nodes()

    assert [type(node) for node in nodes] == [
        AccommodationNode,
        AddonNode,
        AddonNode,
        ProductGroupChildNode,
    ]
    keys = [node.key for node in nodes]
    assert NodeKey.addon("dinner") not in keys
    assert NodeKey.child("dinner", "bbq") in keys
    tour = next(node for node in nodes if node.key == NodeKey.addon("tour"))
    assert tour.price_factor == Decimal("0.5")
    child = nodes[-1]
    assert child.dates == DateRange(date(2025, 6, 1), date(2025, 6, 2))


def test_user_edits_are_tagged_and_price_relevant() -> None:
    tree = make_tree(full_catalog())
    changes = _record(tree)

    tree.set_quantity("adult", 3)

    assert changes == [
        SelectionChange(
            origin=MutationOrigin.USER_EDIT,
            keys=frozenset({tree.accommodation_key}),
            price_relevant=True,
        )
    ]


def test_quantity_outside_declared_bounds_is_rejected() -> None:
    tree = make_tree(full_catalog())

    with pytest.raises(QuantityOutOfRangeError):
        tree.set_quantity("adult", 0)
    with pytest.raises(QuantityOutOfRangeError):
        tree.set_quantity("adult", 7)
    with pytest.raises(QuantityOutOfRangeError):
        tree.set_quantity("pets", 1)
    assert tree.cart.parameter_quantities["adult"] == 2


def test_toggle_addon_flips_selection() -> None:
    tree = make_tree(full_catalog())
    changes = _record(tree)

    assert tree.toggle_addon("kayak") is True
    assert tree.toggle_addon("kayak") is False

    kayak = tree.addon("kayak")
    assert kayak is not None
    assert not kayak.selected
    assert [change.keys for change in changes] == [frozenset({NodeKey.addon("kayak")})] * 2


def test_deselecting_unknown_selection_is_a_no_op() -> None:
    tree = make_tree(full_catalog())
    changes = _record(tree)

    assert tree.toggle_addon("kayak", selected=False) is False
    assert tree.addon("kayak") is None
    assert changes == []


def test_required_addon_cannot_be_removed() -> None:
    tree = make_tree(full_catalog())

    with pytest.raises(SelectionError):
        tree.toggle_addon("breakfast", selected=False)


def test_unknown_addon_and_child_are_rejected() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("dinner")

    with pytest.raises(UnknownAddonError):
        tree.toggle_addon("spa")
    with pytest.raises(UnknownChildError):
        tree.select_child("dinner", "sushi")


def test_select_child_replaces_previous_child() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("dinner")
    tree.select_child("dinner", "bbq")
    changes = _record(tree)

    tree.select_child("dinner", "hotpot", {"guest": 3})

    dinner = tree.addon("dinner")
    assert dinner is not None
    assert dinner.child is not None
    assert dinner.child.item_id == "hotpot"
    assert dinner.child.parameter_quantities == {"guest": 3}
    assert changes[0].keys == {
        NodeKey.addon("dinner"),
        NodeKey.child("dinner", "bbq"),
        NodeKey.child("dinner", "hotpot"),
    }
    assert tree.selection_for(NodeKey.child("dinner", "bbq")) is None


def test_product_group_quantities_live_on_the_child() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("dinner")

    with pytest.raises(SelectionError):
        tree.set_addon_quantity("dinner", "guest", 2)
    with pytest.raises(SelectionError):
        tree.set_child_quantity("dinner", "guest", 2)


def test_reselecting_current_child_keeps_the_selection() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("dinner")
    bbq = tree.select_child("dinner", "bbq")
    changes = _record(tree)

    assert tree.select_child("dinner", "bbq") is bbq
    assert changes == []

    assert tree.select_child("dinner", "bbq", {"guest": 4}) is bbq
    assert bbq.parameter_quantities == {"guest": 4}
    assert [change.price_relevant for change in changes] == [True]
    assert NodeKey.child("dinner", "bbq") in changes[0].keys


def test_clearing_stay_dates_leaves_inherit_parent_addons_without_window() -> None:
    tree = make_tree(full_catalog())

    tree.clear_dates()

    nodes = {node.key: node for node in tree.priceable_nodes()}
    assert nodes[tree.accommodation_key].dates is None
    assert nodes[NodeKey.addon("breakfast")].dates is None
    assert not nodes[NodeKey.addon("breakfast")].is_complete


def test_custom_window_cannot_be_widened() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("tour")

    with pytest.raises(ValueError, match="exceeds"):
        tree.set_addon_dates("tour", DateRange(date(2025, 5, 1), date(2025, 6, 2)))


def test_write_pricing_is_an_engine_write_and_idempotent() -> None:
    tree = make_tree(full_catalog())
    changes = _record(tree)
    pricing = NodePricing(
        key=tree.accommodation_key,
        total=Decimal(400_000),
        breakdown={"adult": ParameterPrice(Decimal(200_000))},
        status=PriceStatus.OK,
    )

    assert tree.write_pricing([pricing]) is True
    assert tree.write_pricing([pricing]) is False

    assert len(changes) == 1
    assert changes[0].from_engine
    assert tree.cart.accommodation.total_price == Decimal(400_000)


def test_vouchers_and_menu_are_not_price_relevant() -> None:
    tree = make_tree(full_catalog())
    changes = _record(tree)
    voucher = Voucher(
        code="SUMMER",
        id="v-1",
        discount_type=DiscountType.FIXED,
        discount_value=Decimal(50_000),
        discount_amount=Decimal(50_000),
    )

    tree.apply_voucher(tree.accommodation_key, voucher)
    tree.set_menu_product(0, "bbq-set", MenuProductSelection("BBQ set", Decimal(90_000), 2))
    tree.remove_voucher(tree.accommodation_key)

    assert [change.price_relevant for change in changes] == [False, False, False]
    assert tree.cart.menu_products == {
        0: {"bbq-set": MenuProductSelection("BBQ set", Decimal(90_000), 2)}
    }
    assert tree.cart.accommodation.voucher is None


def test_deselecting_addon_resets_its_computed_fields() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("kayak")
    tree.write_pricing(
        [
            NodePricing(
                key=NodeKey.addon("kayak"),
                total=Decimal(80_000),
                breakdown={},
                status=PriceStatus.OK,
            )
        ]
    )

    tree.toggle_addon("kayak")

    kayak = tree.addon("kayak")
    assert kayak is not None
    assert kayak.total_price is None
    assert kayak.price_status is PriceStatus.PENDING
