"""Pricing synchronization engine: cache, trigger, fetch cycle, sync-back and totals."""

from __future__ import annotations

from .autosave import AutoSaveScheduler, SaveStatus
from .cache import PricingCache, PricingCacheEntry
from .errors import PricingEngineError, PricingInvariantError, PricingNotSettledError
from .orchestrator import CycleReport, FetchOrchestrator
from .session import PricingSession
from .sync_back import SyncBackWriter, compute_node_pricing, node_total
from .totals import AddonLine, ComponentTotal, TotalsBreakdown, aggregate_totals
from .trigger import DebouncedTrigger

__all__ = [
    "AddonLine",
    "AutoSaveScheduler",
    "ComponentTotal",
    "CycleReport",
    "DebouncedTrigger",
    "FetchOrchestrator",
    "PricingCache",
    "PricingCacheEntry",
    "PricingEngineError",
    "PricingInvariantError",
    "PricingNotSettledError",
    "PricingSession",
    "SaveStatus",
    "SyncBackWriter",
    "TotalsBreakdown",
    "aggregate_totals",
    "compute_node_pricing",
    "node_total",
]
