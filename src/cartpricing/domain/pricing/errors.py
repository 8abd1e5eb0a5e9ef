"""Errors raised by the pricing engine itself (as opposed to its collaborators)."""

from __future__ import annotations


class PricingEngineError(RuntimeError):
    """Base class for pricing engine defects and misuse."""


class PricingNotSettledError(PricingEngineError):
    """Raised when totals are requested while prices are still loading."""


class PricingInvariantError(PricingEngineError):
    """Raised when the selection tree and the pricing cache disagree on a settled tree."""
