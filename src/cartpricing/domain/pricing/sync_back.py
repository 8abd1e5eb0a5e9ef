"""Write settled cache prices back into the selection tree.

The writer listens to the pricing cache. Whenever the cache changes and no
entry is loading, it recomputes every node's total from the cached unit prices
and the node's current quantities, then hands the results to
``SelectionTree.write_pricing``. That write is tagged ``engine_write`` so the
session never mistakes it for a guest edit.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.domain.model import ZERO, NodeKey, PriceStatus
from cartpricing.domain.selection_tree import NodePricing

from .errors import PricingInvariantError, PricingNotSettledError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from decimal import Decimal

    from cartpricing.domain.model import ParameterPrice
    from cartpricing.domain.selection_tree import SelectionTree

    from .cache import PricingCache, PricingCacheEntry

log = getLogger(__name__)


def node_total(breakdown: Mapping[str, ParameterPrice], quantities: Mapping[str, int]) -> Decimal:
    """Sum parameter contributions: ``per_group`` once, ``per_unit`` times quantity."""

    total = ZERO
    for parameter_id, quantity in quantities.items():
        if quantity <= 0:
            continue
        price = breakdown.get(parameter_id)
        if price is None:
            continue
        total += price.contribution(quantity)
    return total


def price_breakdown(
    entry: PricingCacheEntry, quantities: Mapping[str, int]
) -> dict[str, ParameterPrice]:
    """Cached prices restricted to the parameters currently selected."""

    breakdown: dict[str, ParameterPrice] = {}
    for parameter_id, quantity in quantities.items():
        if quantity <= 0:
            continue
        price = entry.parameter_price(parameter_id)
        if price is not None:
            breakdown[parameter_id] = price
    return breakdown


def compute_node_pricing(
    key: NodeKey, entry: PricingCacheEntry, quantities: Mapping[str, int]
) -> NodePricing:
    if entry.status is not PriceStatus.OK:
        return NodePricing(key=key, total=None, breakdown={}, status=entry.status)
    breakdown = price_breakdown(entry, quantities)
    return NodePricing(
        key=key,
        total=node_total(breakdown, quantities),
        breakdown=breakdown,
        status=PriceStatus.OK,
    )


class SyncBackWriter:
    def __init__(self, tree: SelectionTree, cache: PricingCache) -> None:
        self._tree = tree
        self._cache = cache
        self.write_count = 0

    def __call__(self, cache: PricingCache) -> None:
        self.sync()

    def sync(self) -> bool:
        """Write current totals into the tree; returns whether anything changed."""

        if self._cache.any_loading:
            log.debug("Sync-back deferred; %d node(s) loading", len(self._cache.loading_keys()))
            return False
        changed = self._tree.write_pricing(self.compute())
        if changed:
            self.write_count += 1
        return changed

    def compute(self) -> list[NodePricing]:
        """Pricing for every node that has a cache entry, plus product-group parents."""

        pricings: list[NodePricing] = []
        by_key: dict[NodeKey, NodePricing] = {}
        for node in self._tree.priceable_nodes():
            entry = self._cache.get(node.key)
            if entry is None:
                continue
            pricing = compute_node_pricing(node.key, entry, node.quantities)
            pricings.append(pricing)
            by_key[node.key] = pricing

        for parent in self._tree.product_group_parents():
            parent_key = NodeKey.addon(parent.addon_id)
            child = parent.child
            if child is None:
                pricings.append(
                    NodePricing(
                        key=parent_key, total=None, breakdown={}, status=PriceStatus.UNAVAILABLE
                    )
                )
                continue
            child_pricing = by_key.get(NodeKey.child(parent.addon_id, child.item_id))
            if child_pricing is None:
                continue
            # the parent carries no parameters of its own
            pricings.append(
                NodePricing(
                    key=parent_key,
                    total=child_pricing.total,
                    breakdown={},
                    status=child_pricing.status,
                )
            )
        return pricings

    def verify_consistency(self) -> None:
        """Check that a settled tree holds exactly what the cache implies.

        Raises ``PricingNotSettledError`` while prices are loading and
        ``PricingInvariantError`` when the tree and the cache disagree.
        """

        if self._cache.any_loading:
            raise PricingNotSettledError("Cannot verify pricing while prices are loading")

        problems: list[str] = []
        live = {node.key for node in self._tree.priceable_nodes()}
        problems.extend(
            f"{key}: cache entry for a node that is no longer selected"
            for key in self._cache
            if key not in live
        )
        for pricing in self.compute():
            selection = self._tree.selection_for(pricing.key)
            if selection is None:
                problems.append(f"{pricing.key}: priced node missing from the tree")
                continue
            if selection.total_price != pricing.total:
                problems.append(
                    f"{pricing.key}: total {selection.total_price} != expected {pricing.total}"
                )
            if selection.parameter_pricing != dict(pricing.breakdown):
                problems.append(f"{pricing.key}: parameter breakdown diverges from cache")
            if selection.price_status is not pricing.status:
                problems.append(
                    f"{pricing.key}: status {selection.price_status} != expected {pricing.status}"
                )
        if problems:
            raise PricingInvariantError("; ".join(problems))
