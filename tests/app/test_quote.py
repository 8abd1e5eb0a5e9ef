from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import TYPE_CHECKING

from cartpricing.adapters.cart_document import LoadedCart
from cartpricing.app import QuoteResult, price_cart, quote_cart
from cartpricing.domain.model import DiscountType, NodeKey
from tests.support.carts import FAST, TARIFFS, full_catalog, make_tree
from tests.support.oracle import FakePricingOracle, FakeVoucherValidator

if TYPE_CHECKING:
    from pathlib import Path


def _validator() -> FakeVoucherValidator:
    return FakeVoucherValidator({"SUMMER10": (DiscountType.PERCENTAGE, 10)})


def test_price_cart_settles_and_applies_vouchers() -> None:
    tree = make_tree(full_catalog())
    tree.toggle_addon("dinner")
    tree.select_child("dinner", "bbq", {"guest": 2})
    loaded = LoadedCart(
        tree=tree,
        voucher_codes={
            tree.accommodation_key: "SUMMER10",
            NodeKey.addon("dinner"): "SUMMER10",
        },
    )
    validator = _validator()

    result = asyncio.run(
        price_cart(
            loaded,
            oracle=FakePricingOracle(TARIFFS),
            voucher_validator=validator,
            engine_config=FAST,
        )
    )

    assert result.rejected_vouchers == {}
    assert result.totals.accommodation.net == Decimal(360_000)
    # breakfast 150000 plus the bbq child 200000, less 10% of the child
    assert result.totals.addons.net == Decimal(330_000)
    assert result.totals.grand_total == Decimal(690_000)
    assert [request.subtotal for request in validator.requests] == [
        Decimal(400_000),
        Decimal(200_000),
    ]
    assert result.reports


def test_price_cart_reports_rejected_vouchers() -> None:
    tree = make_tree()
    loaded = LoadedCart(tree=tree, voucher_codes={tree.accommodation_key: "BOGUS"})

    result = asyncio.run(
        price_cart(
            loaded,
            oracle=FakePricingOracle(TARIFFS),
            voucher_validator=_validator(),
            engine_config=FAST,
        )
    )

    assert result.rejected_vouchers == {tree.accommodation_key: "Invalid voucher code"}
    assert result.totals.grand_total == Decimal(400_000)


def test_price_cart_ignores_vouchers_without_a_validator() -> None:
    tree = make_tree()
    loaded = LoadedCart(tree=tree, voucher_codes={tree.accommodation_key: "SUMMER10"})

    result = asyncio.run(price_cart(loaded, oracle=FakePricingOracle(TARIFFS), engine_config=FAST))

    assert result.totals.grand_total == Decimal(400_000)
    assert tree.cart.accommodation.voucher is None


def test_quote_cart_loads_and_prices_a_document(tmp_path: Path) -> None:
    path = tmp_path / "cart.json"
    path.write_text(
        json.dumps(
            {
                "catalog": {
                    "unitId": "tent-1",
                    "zoneId": "zone-1",
                    "parameters": [{"id": "adult", "minQuantity": 1}],
                },
                "cart": {
                    "id": "cart-9",
                    "checkIn": "2025-06-01",
                    "checkOut": "2025-06-03",
                    "parameters": {"adult": 3},
                },
            }
        ),
        encoding="utf-8",
    )

    result = quote_cart(path, oracle=FakePricingOracle(TARIFFS), engine_config=FAST)

    assert isinstance(result, QuoteResult)
    assert result.tree.cart.id == "cart-9"
    assert result.totals.grand_total == Decimal(600_000)
