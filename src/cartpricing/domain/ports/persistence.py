"""Port for the auto-save collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cartpricing.domain.model import CartItem
    from cartpricing.domain.pricing.totals import TotalsBreakdown


@runtime_checkable
class CartItemSaver(Protocol):
    """Persist a settled cart item together with its totals."""

    async def save(self, cart: CartItem, totals: TotalsBreakdown) -> None: ...


__all__ = ["CartItemSaver"]
