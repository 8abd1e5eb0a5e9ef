"""Public interface for the JSON cart document adapter."""

from __future__ import annotations

from .schema import CartDocument
from .translator import LoadedCart, build_catalog, build_tree, load_cart_document

__all__ = [
    "CartDocument",
    "LoadedCart",
    "build_catalog",
    "build_tree",
    "load_cart_document",
]
