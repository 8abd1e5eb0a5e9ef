"""Per-session cache of resolved unit prices, keyed by node identity."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.domain.model import ParameterPrice, PricingMode, PriceStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from decimal import Decimal

    from cartpricing.domain.model import NodeKey

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PricingCacheEntry:
    """Latest known prices for one node.

    Prices are authoritative only while ``loading`` is false. A loading entry
    keeps the previous prices so they can be shown while the refresh runs.
    """

    unit_prices: Mapping[str, Decimal] = field(default_factory=dict)
    pricing_modes: Mapping[str, PricingMode] = field(default_factory=dict)
    loading: bool = False
    status: PriceStatus = PriceStatus.PENDING
    fingerprint: str | None = None

    @classmethod
    def empty(cls, status: PriceStatus, *, fingerprint: str | None = None) -> PricingCacheEntry:
        return cls(status=status, fingerprint=fingerprint)

    def as_loading(self) -> PricingCacheEntry:
        return replace(self, loading=True)

    def parameter_price(self, parameter_id: str) -> ParameterPrice | None:
        unit_price = self.unit_prices.get(parameter_id)
        if unit_price is None:
            return None
        mode = self.pricing_modes.get(parameter_id, PricingMode.PER_UNIT)
        return ParameterPrice(unit_price=unit_price, pricing_mode=mode)


CacheListener = Callable[["PricingCache"], None]


class PricingCache:
    """Incrementally updated price store; entries are replaced per node, never wholesale."""

    def __init__(self) -> None:
        self._entries: dict[NodeKey, PricingCacheEntry] = {}
        self._listeners: list[CacheListener] = []

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get(self, key: NodeKey) -> PricingCacheEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NodeKey]:
        return iter(tuple(self._entries))

    def items(self) -> list[tuple[NodeKey, PricingCacheEntry]]:
        return list(self._entries.items())

    @property
    def any_loading(self) -> bool:
        return any(entry.loading for entry in self._entries.values())

    def is_loading(self, key: NodeKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.loading

    def loading_keys(self) -> set[NodeKey]:
        return {key for key, entry in self._entries.items() if entry.loading}

    def mark_loading(self, keys: Iterable[NodeKey]) -> None:
        """Flag ``keys`` as refreshing while preserving their last-known prices."""

        marked = False
        for key in keys:
            existing = self._entries.get(key) or PricingCacheEntry()
            self._entries[key] = existing.as_loading()
            marked = True
        if marked:
            self._notify()

    def merge(self, results: Mapping[NodeKey, PricingCacheEntry]) -> None:
        """Replace the entries of exactly the given nodes; every other entry is untouched."""

        if not results:
            return
        self._entries.update(results)
        log.debug("Pricing cache merged %d node(s)", len(results))
        self._notify()

    def purge(self, keys: Iterable[NodeKey]) -> list[NodeKey]:
        removed = [key for key in keys if self._entries.pop(key, None) is not None]
        if removed:
            log.debug("Pricing cache purged %s", ", ".join(str(key) for key in removed))
            self._notify()
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def _notify(self) -> None:
        for listener in tuple(self._listeners):
            listener(self)
