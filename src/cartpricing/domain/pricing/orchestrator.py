"""Concurrent fetch cycle: one oracle call per dirty node, merged all-settled."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cartpricing.domain.model import PriceStatus, PricingMode
from cartpricing.domain.ports.pricing import PriceQuote, PriceRequest, PricingOracleError

from .cache import PricingCacheEntry

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cartpricing.domain.fingerprint import FingerprintTracker
    from cartpricing.domain.model import AnyNode, NodeKey
    from cartpricing.domain.ports.pricing import PricingOracle

    from .cache import PricingCache

    CurrentFingerprint = Callable[[NodeKey], str | None]

log = getLogger(__name__)


@dataclass(slots=True)
class CycleReport:
    """What one fetch cycle did, per node key."""

    dispatched: list[NodeKey] = field(default_factory=list["NodeKey"])
    skipped: list[NodeKey] = field(default_factory=list["NodeKey"])
    merged: list[NodeKey] = field(default_factory=list["NodeKey"])
    discarded: list[NodeKey] = field(default_factory=list["NodeKey"])
    failed: list[NodeKey] = field(default_factory=list["NodeKey"])

    @property
    def idle(self) -> bool:
        return not (self.dispatched or self.skipped)


@dataclass(frozen=True, slots=True)
class _Outcome:
    node: AnyNode
    fingerprint: str
    quote: PriceQuote | None
    error: BaseException | None = None


class FetchOrchestrator:
    def __init__(
        self,
        oracle: PricingOracle,
        cache: PricingCache,
        tracker: FingerprintTracker,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._oracle = oracle
        self._cache = cache
        self._tracker = tracker
        self._timeout = timeout_seconds or None

    async def run_cycle(
        self,
        nodes: Sequence[AnyNode],
        current_fingerprint: CurrentFingerprint,
    ) -> CycleReport:
        """Fetch every dirty node among ``nodes`` and merge the still-current results.

        ``current_fingerprint`` is consulted when results arrive; a result whose
        node changed (or disappeared) while the call was in flight is dropped.
        """

        report = CycleReport()
        dirty = self._tracker.dirty_nodes(nodes)
        if not dirty:
            log.debug("Fetch cycle found no dirty nodes")
            return report

        incomplete: dict[NodeKey, PricingCacheEntry] = {}
        to_fetch: list[tuple[AnyNode, str]] = []
        for node, fingerprint in dirty:
            self._tracker.record(node.key, fingerprint)
            if not node.is_complete:
                incomplete[node.key] = PricingCacheEntry.empty(
                    PriceStatus.UNAVAILABLE, fingerprint=fingerprint
                )
                report.skipped.append(node.key)
            else:
                to_fetch.append((node, fingerprint))

        # loading flags go up first so the writer never sees a half-marked cycle
        self._cache.mark_loading(node.key for node, _ in to_fetch)
        self._cache.merge(incomplete)
        if not to_fetch:
            return report

        report.dispatched.extend(node.key for node, _ in to_fetch)
        log.info("Fetching prices for %d node(s)", len(to_fetch))

        outcomes = await asyncio.gather(
            *(self._fetch(node, fingerprint) for node, fingerprint in to_fetch)
        )

        results: dict[NodeKey, PricingCacheEntry] = {}
        defects: list[BaseException] = []
        for outcome in outcomes:
            key = outcome.node.key
            if current_fingerprint(key) != outcome.fingerprint:
                log.debug("Discarding stale price result for %s", key)
                report.discarded.append(key)
                if self._tracker.dispatched(key) == outcome.fingerprint:
                    # nothing newer is in flight; the node must be fetched again
                    self._tracker.forget(key)
                continue
            if outcome.quote is None:
                report.failed.append(key)
                results[key] = PricingCacheEntry.empty(
                    PriceStatus.FAILED, fingerprint=outcome.fingerprint
                )
                if outcome.error is not None and not _is_oracle_failure(outcome.error):
                    defects.append(outcome.error)
                continue
            results[key] = _entry_from_quote(outcome.node, outcome.quote, outcome.fingerprint)
            report.merged.append(key)

        self._cache.merge(results)
        log.info(
            "Fetch cycle settled: merged=%d, failed=%d, discarded=%d, skipped=%d",
            len(report.merged),
            len(report.failed),
            len(report.discarded),
            len(report.skipped),
        )
        if defects:
            raise defects[0]
        return report

    async def _fetch(self, node: AnyNode, fingerprint: str) -> _Outcome:
        dates = node.dates
        if dates is None:  # pragma: no cover - filtered by run_cycle
            return _Outcome(node=node, fingerprint=fingerprint, quote=None)
        request = PriceRequest(
            unit_id=node.unit_id,
            dates=dates,
            quantities=node.requested_quantities,
        )
        try:
            if self._timeout is None:
                quote = await self._oracle.quote(request)
            else:
                async with asyncio.timeout(self._timeout):
                    quote = await self._oracle.quote(request)
        except (PricingOracleError, TimeoutError) as exc:
            reason = str(exc) or type(exc).__name__
            log.warning("Price unavailable for %s: %s", node.key, reason)
            return _Outcome(node=node, fingerprint=fingerprint, quote=None, error=exc)
        except Exception as exc:  # noqa: BLE001
            log.exception("Unexpected error pricing %s", node.key)
            return _Outcome(node=node, fingerprint=fingerprint, quote=None, error=exc)
        return _Outcome(node=node, fingerprint=fingerprint, quote=quote)


def _is_oracle_failure(error: BaseException) -> bool:
    return isinstance(error, PricingOracleError | TimeoutError)


def _entry_from_quote(node: AnyNode, quote: PriceQuote, fingerprint: str) -> PricingCacheEntry:
    requested = node.requested_quantities
    factor = node.price_factor
    # prices for parameters no longer in the selection are ignored
    unit_prices = {
        parameter_id: price * factor
        for parameter_id, price in quote.unit_prices.items()
        if parameter_id in requested
    }
    pricing_modes = {
        parameter_id: quote.pricing_modes.get(parameter_id, PricingMode.PER_UNIT)
        for parameter_id in unit_prices
    }
    return PricingCacheEntry(
        unit_prices=unit_prices,
        pricing_modes=pricing_modes,
        loading=False,
        status=PriceStatus.OK,
        fingerprint=fingerprint,
    )
