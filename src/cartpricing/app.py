"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.adapters.cart_document import load_cart_document
from cartpricing.adapters.pricing_api import PricingApiClient
from cartpricing.adapters.voucher_api import VoucherApiClient
from cartpricing.config import get_engine_config, get_pricing_api_config
from cartpricing.domain.ports import VoucherRejectedError
from cartpricing.domain.pricing import PricingSession

if TYPE_CHECKING:
    from pathlib import Path

    from cartpricing.adapters.cart_document import LoadedCart
    from cartpricing.config import EngineConfig
    from cartpricing.domain.model import NodeKey
    from cartpricing.domain.ports import PricingOracle, VoucherValidator
    from cartpricing.domain.pricing import CycleReport, TotalsBreakdown
    from cartpricing.domain.selection_tree import SelectionTree

log = getLogger(__name__)


@dataclass(slots=True)
class QuoteResult:
    tree: SelectionTree
    totals: TotalsBreakdown
    reports: list[CycleReport] = field(default_factory=list["CycleReport"])
    rejected_vouchers: dict[NodeKey, str] = field(default_factory=dict["NodeKey", str])


async def price_cart(
    loaded: LoadedCart,
    *,
    oracle: PricingOracle,
    voucher_validator: VoucherValidator | None = None,
    engine_config: EngineConfig | None = None,
) -> QuoteResult:
    """Settle every price of ``loaded``, apply its vouchers and aggregate the totals."""

    rejected: dict[NodeKey, str] = {}
    async with PricingSession(
        loaded.tree,
        oracle,
        voucher_validator=voucher_validator,
        config=engine_config,
    ) as session:
        await session.settle()
        if loaded.voucher_codes and voucher_validator is None:
            log.warning("Cart lists voucher codes but no voucher validator is configured")
        elif loaded.voucher_codes:
            for key, code in loaded.voucher_codes.items():
                try:
                    await session.apply_voucher(key, code)
                except VoucherRejectedError as exc:
                    log.warning("Voucher %s rejected for %s: %s", code, key, exc)
                    rejected[key] = str(exc)
        session.writer.verify_consistency()
        totals = session.totals()
        reports = list(session.reports)

    log.info(
        "Priced cart item %s in %d cycle(s): grand total %s",
        loaded.tree.cart.id,
        len(reports),
        totals.grand_total,
    )
    return QuoteResult(
        tree=loaded.tree, totals=totals, reports=reports, rejected_vouchers=rejected
    )


def quote_cart(
    path: Path,
    *,
    oracle: PricingOracle | None = None,
    voucher_validator: VoucherValidator | None = None,
    engine_config: EngineConfig | None = None,
) -> QuoteResult:
    """Load a cart document and price it against the configured booking API."""

    loaded = load_cart_document(path)
    effective_config = engine_config or get_engine_config()
    log.info("Quoting cart item %s from %s", loaded.tree.cart.id, path)
    return asyncio.run(
        _quote_with_defaults(
            loaded,
            oracle=oracle,
            voucher_validator=voucher_validator,
            engine_config=effective_config,
        )
    )


async def _quote_with_defaults(
    loaded: LoadedCart,
    *,
    oracle: PricingOracle | None,
    voucher_validator: VoucherValidator | None,
    engine_config: EngineConfig,
) -> QuoteResult:
    if oracle is not None:
        return await price_cart(
            loaded,
            oracle=oracle,
            voucher_validator=voucher_validator,
            engine_config=engine_config,
        )

    api_config = get_pricing_api_config()
    async with (
        PricingApiClient(resilience=api_config.pricing) as pricing_client,
        VoucherApiClient(resilience=api_config.vouchers) as voucher_client,
    ):
        return await price_cart(
            loaded,
            oracle=pricing_client,
            voucher_validator=voucher_validator or voucher_client,
            engine_config=engine_config,
        )
