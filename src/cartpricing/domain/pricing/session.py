"""One editing session: the engine's entry point.

A ``PricingSession`` owns the pricing cache, the fingerprint tracker, the
debounced trigger and the sync-back writer for a single selection tree. Guest
edits on the tree restart the trigger; when it fires, every dirty node is
fetched in one cycle and settled prices flow back into the tree.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.config.engine import EngineConfig
from cartpricing.domain.fingerprint import FingerprintTracker, fingerprint
from cartpricing.domain.model import ZERO, NodeKey, NodeKind, VoucherScope
from cartpricing.domain.ports.vouchers import VoucherRequest
from cartpricing.domain.selection_tree import SelectionError

from .cache import PricingCache
from .errors import PricingEngineError, PricingNotSettledError
from .orchestrator import FetchOrchestrator
from .sync_back import SyncBackWriter
from .totals import aggregate_totals
from .trigger import DebouncedTrigger

if TYPE_CHECKING:
    from decimal import Decimal

    from cartpricing.domain.model import AnyNode, DateRange, Voucher
    from cartpricing.domain.ports import PricingOracle, VoucherValidator
    from cartpricing.domain.selection_tree import SelectionChange, SelectionTree

    from .orchestrator import CycleReport
    from .totals import TotalsBreakdown

log = getLogger(__name__)


class PricingSession:
    def __init__(
        self,
        tree: SelectionTree,
        oracle: PricingOracle,
        voucher_validator: VoucherValidator | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._tree = tree
        self._voucher_validator = voucher_validator
        self._cache = PricingCache()
        self._tracker = FingerprintTracker()
        self._orchestrator = FetchOrchestrator(
            oracle,
            self._cache,
            self._tracker,
            timeout_seconds=self._config.fetch_timeout_seconds,
        )
        self._writer = SyncBackWriter(tree, self._cache)
        self._trigger = DebouncedTrigger(
            self._start_cycle, delay_seconds=self._config.debounce_seconds
        )
        self._cycles: set[asyncio.Task[CycleReport]] = set()
        self._defects: list[BaseException] = []
        # fingerprints of the live nodes, rebuilt after the next guest edit
        self._fingerprints: dict[NodeKey, str] | None = None
        self._unsubscribers = [
            tree.subscribe(self._on_tree_change),
            self._cache.subscribe(self._writer),
        ]
        self._closed = False
        self.reports: list[CycleReport] = []

    async def __aenter__(self) -> PricingSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------ reads

    @property
    def tree(self) -> SelectionTree:
        return self._tree

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def cache(self) -> PricingCache:
        return self._cache

    @property
    def writer(self) -> SyncBackWriter:
        return self._writer

    @property
    def trigger(self) -> DebouncedTrigger:
        return self._trigger

    @property
    def any_loading(self) -> bool:
        return self._cache.any_loading

    def is_loading(self, key: NodeKey) -> bool:
        return self._cache.is_loading(key)

    def dirty_keys(self) -> list[NodeKey]:
        return [node.key for node, _ in self._tracker.dirty_nodes(self._tree.priceable_nodes())]

    @property
    def has_pending_changes(self) -> bool:
        """True while the tree holds edits that no fetch cycle has picked up yet."""

        return self._trigger.pending or bool(self.dirty_keys())

    @property
    def is_settled(self) -> bool:
        return not (self._cycles or self.any_loading or self.has_pending_changes)

    def totals(self) -> TotalsBreakdown:
        if self.any_loading:
            raise PricingNotSettledError(
                f"{len(self._cache.loading_keys())} node(s) are still loading"
            )
        return aggregate_totals(self._tree.cart)

    # ------------------------------------------------------------- scheduling

    def refresh(self) -> bool:
        """Schedule a cycle if any node is dirty; returns whether one was scheduled."""

        self._ensure_open()
        if not self.dirty_keys():
            return False
        self._trigger.restart()
        return True

    def flush(self) -> bool:
        """Skip the rest of the quiet period and start the pending cycle now."""

        self._ensure_open()
        return self._trigger.flush()

    async def settle(self) -> None:
        """Wait until no cycle is pending or running and every node is priced.

        Unexpected errors raised inside a cycle are re-raised here.
        """

        self._ensure_open()
        if not self._trigger.pending and not self._cycles:
            self.refresh()
        while self._trigger.pending or self._cycles:
            if self._trigger.pending:
                await self._trigger.wait_fired()
                continue
            await asyncio.gather(*tuple(self._cycles), return_exceptions=True)
        if self._defects:
            defect = self._defects.pop(0)
            self._defects.clear()
            raise defect

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._trigger.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        if self._cycles:
            await asyncio.gather(*tuple(self._cycles), return_exceptions=True)
        self._cache.clear()
        log.debug("Pricing session for %s closed", self._tree.cart.id)

    # --------------------------------------------------------------- vouchers

    async def apply_voucher(self, target: NodeKey, code: str) -> Voucher:
        """Validate ``code`` against the target's current subtotal and attach it.

        ``VoucherRejectedError`` propagates to the caller; pricing state is untouched.
        """

        validator = self._require_validator()
        selection = self._tree.selection_for(target)
        if selection is None:
            raise SelectionError(f"No selection for {target}")
        request = VoucherRequest(
            code=code.strip(),
            unit_id=self._voucher_unit(target),
            zone_id=self._tree.cart.zone_id,
            subtotal=self._subtotal_for(target),
            scope=(
                VoucherScope.ACCOMMODATION
                if target.kind is NodeKind.ACCOMMODATION
                else VoucherScope.ADDON
            ),
            dates=self._dates_for(target),
        )
        voucher = await validator.validate(request)
        self._tree.apply_voucher(target, voucher)
        log.info("Voucher %s applied to %s (-%s)", voucher.code, target, voucher.discount_amount)
        return voucher

    def remove_voucher(self, target: NodeKey) -> None:
        self._tree.remove_voucher(target)

    async def apply_menu_voucher(self, night: int, product_id: str, code: str) -> Voucher:
        validator = self._require_validator()
        product = self._tree.cart.menu_products.get(night, {}).get(product_id)
        if product is None:
            raise SelectionError(f"No menu product {product_id!r} on night {night}")
        request = VoucherRequest(
            code=code.strip(),
            unit_id=product_id,
            zone_id=self._tree.cart.zone_id,
            subtotal=product.cost,
            scope=VoucherScope.MENU_ONLY,
            dates=self._tree.cart.dates,
        )
        voucher = await validator.validate(request)
        self._tree.set_menu_product(night, product_id, replace(product, voucher=voucher))
        return voucher

    # --------------------------------------------------------------- internals

    def _on_tree_change(self, change: SelectionChange) -> None:
        if change.from_engine:
            return
        self._fingerprints = None
        self._prune()
        if not change.price_relevant:
            return
        if self.dirty_keys():
            self._trigger.restart()
        elif not (self._cycles or self._trigger.pending or self.any_loading):
            # nothing to fetch, but the edit may have reset prices the cache still holds
            self._writer.sync()

    def _prune(self) -> None:
        live = {node.key for node in self._tree.priceable_nodes()}
        self._tracker.prune(live)
        self._cache.purge([key for key in self._cache if key not in live])

    def _current_fingerprint(self, key: NodeKey) -> str | None:
        if self._fingerprints is None:
            self._fingerprints = {
                node.key: fingerprint(node) for node in self._tree.priceable_nodes()
            }
        return self._fingerprints.get(key)

    def _start_cycle(self) -> None:
        if self._closed:
            return
        nodes = self._tree.priceable_nodes()
        task = asyncio.get_running_loop().create_task(self._run_cycle(nodes))
        self._cycles.add(task)
        task.add_done_callback(self._cycle_done)

    async def _run_cycle(self, nodes: list[AnyNode]) -> CycleReport:
        report = await self._orchestrator.run_cycle(nodes, self._current_fingerprint)
        self.reports.append(report)
        if report.discarded and not self._trigger.pending and not self._closed:
            # edits that landed mid-flight need a follow-up cycle
            self.refresh()
        return report

    def _cycle_done(self, task: asyncio.Task[CycleReport]) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Fetch cycle failed: %s", exc)
            self._defects.append(exc)

    def _require_validator(self) -> VoucherValidator:
        if self._voucher_validator is None:
            raise PricingEngineError("No voucher validator configured for this session")
        return self._voucher_validator

    def _ensure_open(self) -> None:
        if self._closed:
            raise PricingEngineError("Pricing session is closed")

    def _voucher_unit(self, key: NodeKey) -> str:
        if key.kind is NodeKind.ACCOMMODATION:
            return self._tree.cart.unit_id
        return key.item_id

    def _subtotal_for(self, key: NodeKey) -> Decimal:
        selection = self._tree.selection_for(key)
        if selection is None:
            return ZERO
        if key.kind is NodeKind.ADDON:
            addon = self._tree.addon(key.item_id)
            if addon is not None and addon.child is not None:
                return addon.child.total_price or ZERO
        return selection.total_price or ZERO

    def _dates_for(self, key: NodeKey) -> DateRange | None:
        if key.kind is NodeKind.ACCOMMODATION:
            return self._tree.cart.dates
        for node in self._tree.priceable_nodes():
            if node.key == key:
                return node.dates
        return None
