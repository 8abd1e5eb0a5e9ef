"""Structural fingerprints of price-relevant inputs.

A fingerprint covers exactly what the oracle sees for a node: the unit, the
effective date window and the non-zero quantities. Vouchers, names and the
engine-written totals are deliberately absent, so writing a computed price
back into the tree can never make a node look edited.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cartpricing.domain.model import DateRange, NodeKey, PriceableNode

_DIGEST_SIZE = 16


def _digest(payload: Mapping[str, object]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.blake2b(encoded.encode("utf-8"), digest_size=_DIGEST_SIZE).hexdigest()


def _dates_payload(dates: DateRange | None) -> list[str] | None:
    if dates is None:
        return None
    return list(dates.as_iso())


def _quantities_payload(quantities: Mapping[str, int]) -> dict[str, int]:
    return {parameter_id: qty for parameter_id, qty in quantities.items() if qty > 0}


def fingerprint(node: PriceableNode) -> str:
    """Return a digest that is equal for semantically equal price inputs."""

    return _digest(
        {
            "kind": str(node.key.kind),
            "unit": node.unit_id,
            "parent": node.key.parent_id,
            "dates": _dates_payload(node.dates),
            "quantities": _quantities_payload(node.quantities),
        }
    )


@dataclass(slots=True)
class FingerprintTracker:
    """Remembers the fingerprint each node was last dispatched with."""

    _dispatched: dict[NodeKey, str] = field(default_factory=dict["NodeKey", str])

    def dirty_nodes[TNode: PriceableNode](self, nodes: Iterable[TNode]) -> list[tuple[TNode, str]]:
        """Return ``(node, current fingerprint)`` for every node whose inputs changed.

        A node that was never dispatched is always dirty.
        """

        dirty: list[tuple[TNode, str]] = []
        for node in nodes:
            current = fingerprint(node)
            if self._dispatched.get(node.key) != current:
                dirty.append((node, current))
        return dirty

    def is_dirty(self, node: PriceableNode) -> bool:
        return self._dispatched.get(node.key) != fingerprint(node)

    def record(self, key: NodeKey, value: str) -> None:
        self._dispatched[key] = value

    def dispatched(self, key: NodeKey) -> str | None:
        return self._dispatched.get(key)

    def forget(self, key: NodeKey) -> None:
        self._dispatched.pop(key, None)

    def prune(self, live_keys: Iterable[NodeKey]) -> list[NodeKey]:
        """Drop tracking for nodes that are no longer selected; return the removed keys."""

        live = set(live_keys)
        removed = [key for key in self._dispatched if key not in live]
        for key in removed:
            del self._dispatched[key]
        return removed

    def __contains__(self, key: object) -> bool:
        return key in self._dispatched

    def __len__(self) -> int:
        return len(self._dispatched)
