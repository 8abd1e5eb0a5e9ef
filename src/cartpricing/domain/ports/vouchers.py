"""Port for the voucher validation endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from decimal import Decimal

    from cartpricing.domain.model import DateRange, Voucher, VoucherScope


class VoucherRejectedError(ValueError):
    """Raised when a voucher code cannot be applied; the message is user-facing."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class VoucherRequest:
    code: str
    unit_id: str
    zone_id: str
    subtotal: Decimal
    scope: VoucherScope
    dates: DateRange | None = None


@runtime_checkable
class VoucherValidator(Protocol):
    """Resolve a voucher code against a subtotal, or raise ``VoucherRejectedError``."""

    async def validate(self, request: VoucherRequest) -> Voucher: ...


__all__ = ["VoucherRejectedError", "VoucherRequest", "VoucherValidator"]
