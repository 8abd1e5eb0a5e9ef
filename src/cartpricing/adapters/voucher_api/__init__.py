"""Public interface for the voucher validation adapter."""

from __future__ import annotations

from .client import VoucherApiClient, build_request_body
from .schema import ValidateVoucherRequest, ValidateVoucherResponse, VoucherErrorResponse

__all__ = [
    "ValidateVoucherRequest",
    "ValidateVoucherResponse",
    "VoucherApiClient",
    "VoucherErrorResponse",
    "build_request_body",
]
