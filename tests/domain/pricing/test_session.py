from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from cartpricing.config import EngineConfig
from cartpricing.domain.model import (
    DiscountType,
    MenuProductSelection,
    NodeKey,
    PriceStatus,
    PricingMode,
    VoucherScope,
)
from cartpricing.domain.ports import PriceQuote, PriceRequest, VoucherRejectedError
from cartpricing.domain.pricing import (
    PricingEngineError,
    PricingNotSettledError,
    PricingSession,
)
from tests.support.carts import (
    BREAKFAST,
    DINNER,
    FAST,
    KAYAK,
    STAY,
    TARIFFS,
    TOUR,
    UNIT_ID,
    full_catalog,
    make_catalog,
    make_tree,
)
from tests.support.oracle import FakePricingOracle, FakeVoucherValidator, wait_until

if TYPE_CHECKING:
    from cartpricing.domain.model import AnyNode
    from cartpricing.domain.selection_tree import SelectionTree

KAYAK_KEY = NodeKey.addon("kayak")


def _validator() -> FakeVoucherValidator:
    return FakeVoucherValidator(
        {
            "SUMMER10": (DiscountType.PERCENTAGE, 10),
            "BIG": (DiscountType.FIXED, 150_000),
        }
    )


def test_accommodation_only_cart_settles_to_its_tariff() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            assert session.is_settled
            return session.totals().grand_total

    assert asyncio.run(scenario()) == Decimal(400_000)
    assert tree.cart.accommodation.price_status is PriceStatus.OK
    assert oracle.calls[0].quantities == {"adult": 2}


def test_required_per_group_addon_is_added_once() -> None:
    tree = make_tree(make_catalog(BREAKFAST))
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            tree.set_addon_quantity("breakfast", "set", 3)
            await session.settle()
            return session.totals().grand_total

    assert asyncio.run(scenario()) == Decimal(550_000)
    breakfast = tree.addon("breakfast")
    assert breakfast is not None
    assert breakfast.parameter_pricing["set"].pricing_mode is PricingMode.PER_GROUP


def test_bursts_of_edits_collapse_into_one_fetch() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> Decimal | None:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            for adults in (3, 4, 5):
                tree.set_quantity("adult", adults)
            await session.settle()
        return tree.cart.accommodation.total_price

    assert asyncio.run(scenario()) == Decimal(1_000_000)
    assert [call.quantities for call in oracle.calls_for(UNIT_ID)] == [{"adult": 2}, {"adult": 5}]


def test_switching_child_mid_flight_prices_the_new_child() -> None:
    tree = make_tree(make_catalog(DINNER))
    oracle = FakePricingOracle(TARIFFS)
    oracle.hold("bbq")

    async def scenario() -> None:
        async with PricingSession(tree, oracle, config=FAST) as session:
            tree.toggle_addon("dinner")
            tree.select_child("dinner", "bbq")
            await wait_until(lambda: oracle.parked("bbq") == 1)
            tree.select_child("dinner", "hotpot")
            oracle.release_all()
            await session.settle()
            session.writer.verify_consistency()
            assert NodeKey.child("dinner", "bbq") not in session.cache

    asyncio.run(scenario())
    dinner = tree.addon("dinner")
    assert dinner is not None
    assert dinner.child is not None
    assert dinner.child.item_id == "hotpot"
    assert dinner.child.total_price == Decimal(120_000)
    assert dinner.total_price == Decimal(120_000)
    assert len(oracle.calls_for("bbq")) == 1


def test_reselecting_current_child_keeps_its_price() -> None:
    tree = make_tree(make_catalog(DINNER))
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, config=FAST) as session:
            tree.toggle_addon("dinner")
            tree.select_child("dinner", "bbq")
            await session.settle()
            tree.select_child("dinner", "bbq")
            await session.settle()
            session.writer.verify_consistency()
            return session.totals().addons.cost

    assert asyncio.run(scenario()) == Decimal(100_000)
    dinner = tree.addon("dinner")
    assert dinner is not None
    assert dinner.total_price == Decimal(100_000)
    assert len(oracle.calls_for("bbq")) == 1


def _snapshots_per_settle(tree: SelectionTree, monkeypatch: pytest.MonkeyPatch) -> int:
    snapshot = tree.priceable_nodes
    calls: list[int] = []

    def counting() -> list[AnyNode]:
        calls.append(1)
        return snapshot()

    monkeypatch.setattr(tree, "priceable_nodes", counting)

    async def scenario() -> None:
        async with PricingSession(tree, FakePricingOracle(TARIFFS), config=FAST) as session:
            await session.settle()

    asyncio.run(scenario())
    return len(calls)


def test_merging_results_snapshots_the_tree_once(monkeypatch: pytest.MonkeyPatch) -> None:
    small = make_tree()
    large = make_tree(make_catalog(BREAKFAST, TOUR))
    large.toggle_addon("tour")

    assert _snapshots_per_settle(large, monkeypatch) == _snapshots_per_settle(small, monkeypatch)
    assert large.cart.addons["tour"].price_status is PriceStatus.OK


def test_stale_results_are_never_merged() -> None:
    def per_head_tariff(request: PriceRequest) -> PriceQuote:
        # unit price depends on the head count so a stale merge is visible
        adults = request.quantities.get("adult", 0)
        return PriceQuote(
            unit_prices={"adult": Decimal(1_000 * adults)},
            pricing_modes={"adult": PricingMode.PER_UNIT},
        )

    tree = make_tree()
    oracle = FakePricingOracle(pricer=per_head_tariff)
    oracle.hold(UNIT_ID)

    async def scenario() -> PricingSession:
        async with PricingSession(tree, oracle, config=FAST) as session:
            session.refresh()
            await wait_until(lambda: oracle.parked(UNIT_ID) == 1)
            tree.set_quantity("adult", 3)
            tree.set_quantity("adult", 4)
            oracle.release_all()
            await session.settle()
            return session

    session = asyncio.run(scenario())
    assert session.reports[0].discarded == [tree.accommodation_key]
    assert tree.cart.accommodation.total_price == Decimal(16_000)
    assert [call.quantities["adult"] for call in oracle.calls] == [2, 4]


def test_engine_writes_do_not_schedule_more_fetches() -> None:
    tree = make_tree(full_catalog())
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> tuple[int, int, int, int]:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            calls, fires = len(oracle.calls), session.trigger.fire_count
            await asyncio.sleep(0.05)
            assert not session.trigger.pending
            return calls, len(oracle.calls), fires, session.trigger.fire_count

    calls_before, calls_after, fires_before, fires_after = asyncio.run(scenario())
    assert calls_before == calls_after
    assert fires_before == fires_after


def test_unchanged_inputs_are_not_refetched() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> bool:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            tree.set_quantity("adult", 3)
            tree.set_quantity("adult", 2)
            await session.settle()
            return session.refresh()

    assert asyncio.run(scenario()) is False
    assert len(oracle.calls) == 1


def test_a_failing_addon_leaves_the_rest_priced() -> None:
    tree = make_tree(full_catalog())
    oracle = FakePricingOracle(TARIFFS)
    oracle.fail("kayak")

    async def scenario() -> tuple[Decimal, Decimal]:
        async with PricingSession(tree, oracle, config=FAST) as session:
            tree.toggle_addon("kayak")
            tree.set_addon_dates("kayak", STAY)
            await session.settle()
            kayak = tree.addon("kayak")
            assert kayak is not None
            assert kayak.price_status is PriceStatus.FAILED
            assert kayak.total_price is None
            failed_total = session.totals().grand_total

            oracle.recover("kayak")
            tree.set_addon_quantity("kayak", "boat", 2)
            await session.settle()
            return failed_total, session.totals().grand_total

    failed_total, recovered_total = asyncio.run(scenario())
    assert failed_total == Decimal(550_000)
    assert recovered_total == Decimal(710_000)


def test_clearing_dates_marks_nodes_unavailable_without_calls() -> None:
    tree = make_tree(make_catalog(BREAKFAST))
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()
            calls = len(oracle.calls)
            tree.clear_dates()
            await session.settle()
            assert len(oracle.calls) == calls
            return session.totals().grand_total

    assert asyncio.run(scenario()) == Decimal(0)
    assert tree.cart.accommodation.price_status is PriceStatus.UNAVAILABLE
    assert tree.cart.accommodation.total_price is None
    breakfast = tree.addon("breakfast")
    assert breakfast is not None
    assert breakfast.price_status is PriceStatus.UNAVAILABLE


def test_slow_oracle_calls_fail_after_the_timeout() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)
    oracle.hold(UNIT_ID)
    config = EngineConfig(
        debounce_seconds=0.005, autosave_debounce_seconds=0.005, fetch_timeout_seconds=0.02
    )

    async def scenario() -> None:
        async with PricingSession(tree, oracle, config=config) as session:
            await session.settle()
            assert not session.any_loading

    asyncio.run(scenario())
    assert tree.cart.accommodation.price_status is PriceStatus.FAILED


def test_totals_are_refused_while_prices_load() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)
    oracle.hold(UNIT_ID)

    async def scenario() -> None:
        async with PricingSession(tree, oracle, config=FAST) as session:
            session.refresh()
            await wait_until(lambda: oracle.parked(UNIT_ID) == 1)
            assert session.is_loading(tree.accommodation_key)
            with pytest.raises(PricingNotSettledError):
                session.totals()
            oracle.release_all()
            await session.settle()
            assert session.totals().grand_total == Decimal(400_000)

    asyncio.run(scenario())


def test_unexpected_cycle_errors_surface_from_settle() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)
    oracle.fail(UNIT_ID, KeyError("tariff table corrupted"))

    async def scenario() -> None:
        async with PricingSession(tree, oracle, config=FAST) as session:
            await session.settle()

    with pytest.raises(KeyError):
        asyncio.run(scenario())


def test_closed_session_refuses_work() -> None:
    tree = make_tree()
    session = PricingSession(tree, FakePricingOracle(TARIFFS), config=FAST)

    async def scenario() -> None:
        await session.close()
        with pytest.raises(PricingEngineError):
            session.refresh()
        tree.set_quantity("adult", 3)

    asyncio.run(scenario())
    assert not session.trigger.pending


def test_percentage_voucher_discounts_the_accommodation() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)
    validator = _validator()

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, validator, config=FAST) as session:
            await session.settle()
            voucher = await session.apply_voucher(tree.accommodation_key, " SUMMER10 ")
            assert voucher.discount_amount == Decimal(40_000)
            assert session.is_settled
            return session.totals().grand_total

    assert asyncio.run(scenario()) == Decimal(360_000)
    request = validator.requests[0]
    assert request.code == "SUMMER10"
    assert request.subtotal == Decimal(400_000)
    assert request.scope is VoucherScope.ACCOMMODATION
    assert request.unit_id == UNIT_ID
    assert len(oracle.calls) == 1


def test_rejected_voucher_leaves_the_cart_untouched() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)

    async def scenario() -> None:
        async with PricingSession(tree, oracle, _validator(), config=FAST) as session:
            await session.settle()
            with pytest.raises(VoucherRejectedError):
                await session.apply_voucher(tree.accommodation_key, "EXPIRED")
            assert session.totals().grand_total == Decimal(400_000)

    asyncio.run(scenario())
    assert tree.cart.accommodation.voucher is None


def test_fixed_voucher_larger_than_the_addon_floors_at_zero() -> None:
    tree = make_tree(make_catalog(KAYAK))
    oracle = FakePricingOracle(TARIFFS)
    validator = _validator()

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, validator, config=FAST) as session:
            tree.toggle_addon("kayak")
            tree.set_addon_dates("kayak", STAY)
            await session.settle()
            await session.apply_voucher(KAYAK_KEY, "BIG")
            totals = session.totals()
            assert totals.addons.net == Decimal(0)
            return totals.grand_total

    assert asyncio.run(scenario()) == Decimal(400_000)
    request = validator.requests[0]
    assert request.scope is VoucherScope.ADDON
    assert request.subtotal == Decimal(80_000)
    assert request.dates == STAY


def test_menu_voucher_discounts_the_menu_product() -> None:
    tree = make_tree()
    oracle = FakePricingOracle(TARIFFS)
    validator = _validator()

    async def scenario() -> Decimal:
        async with PricingSession(tree, oracle, validator, config=FAST) as session:
            await session.settle()
            tree.set_menu_product(0, "bbq-set", MenuProductSelection("BBQ set", Decimal(90_000), 2))
            await session.apply_menu_voucher(0, "bbq-set", "SUMMER10")
            return session.totals().menu.net

    assert asyncio.run(scenario()) == Decimal(162_000)
    assert validator.requests[0].scope is VoucherScope.MENU_ONLY


def test_vouchers_need_a_validator() -> None:
    tree = make_tree()

    async def scenario() -> None:
        async with PricingSession(tree, FakePricingOracle(TARIFFS), config=FAST) as session:
            await session.settle()
            with pytest.raises(PricingEngineError):
                await session.apply_voucher(tree.accommodation_key, "SUMMER10")

    asyncio.run(scenario())
