"""Priceable node variants: the polymorphic view the engine fetches and prices.

Nodes are immutable snapshots taken from the selection tree. The fetch
orchestrator and sync-back writer only ever see this closed set of variants,
never the mutable selection objects themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar, NamedTuple, Protocol

from .enums import NodeKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .primitives import DateRange


class NodeKey(NamedTuple):
    """Identity of a node in the pricing cache."""

    kind: NodeKind
    item_id: str
    parent_id: str | None = None

    @classmethod
    def accommodation(cls, cart_item_id: str) -> NodeKey:
        return cls(NodeKind.ACCOMMODATION, cart_item_id)

    @classmethod
    def addon(cls, addon_id: str) -> NodeKey:
        return cls(NodeKind.ADDON, addon_id)

    @classmethod
    def child(cls, parent_id: str, item_id: str) -> NodeKey:
        return cls(NodeKind.CHILD, item_id, parent_id)

    def __str__(self) -> str:
        if self.parent_id is None:
            return f"{self.kind}:{self.item_id}"
        return f"{self.kind}:{self.parent_id}/{self.item_id}"


class PriceableNode(Protocol):
    """Capability shared by every node the oracle can price."""

    KIND: ClassVar[NodeKind]

    @property
    def key(self) -> NodeKey: ...

    @property
    def unit_id(self) -> str: ...

    @property
    def dates(self) -> DateRange | None: ...

    @property
    def quantities(self) -> Mapping[str, int]: ...

    @property
    def price_factor(self) -> Decimal: ...


def _positive(quantities: Mapping[str, int]) -> dict[str, int]:
    return {parameter_id: qty for parameter_id, qty in quantities.items() if qty > 0}


@dataclass(frozen=True, slots=True, kw_only=True)
class _NodeBase:
    unit_id: str
    dates: DateRange | None
    quantities: Mapping[str, int] = field(default_factory=dict[str, int])
    price_factor: Decimal = Decimal(1)

    @property
    def requested_quantities(self) -> dict[str, int]:
        """Quantities sent to the oracle; zero quantities are not part of the selection."""

        return _positive(self.quantities)

    @property
    def is_complete(self) -> bool:
        return self.dates is not None


@dataclass(frozen=True, slots=True, kw_only=True)
class AccommodationNode(_NodeBase):
    KIND: ClassVar[NodeKind] = NodeKind.ACCOMMODATION

    cart_item_id: str

    @property
    def key(self) -> NodeKey:
        return NodeKey.accommodation(self.cart_item_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class AddonNode(_NodeBase):
    KIND: ClassVar[NodeKind] = NodeKind.ADDON

    @property
    def key(self) -> NodeKey:
        return NodeKey.addon(self.unit_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class ProductGroupChildNode(_NodeBase):
    KIND: ClassVar[NodeKind] = NodeKind.CHILD

    parent_id: str

    @property
    def key(self) -> NodeKey:
        return NodeKey.child(self.parent_id, self.unit_id)


type AnyNode = AccommodationNode | AddonNode | ProductGroupChildNode
