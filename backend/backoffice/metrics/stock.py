# Overview: Total stock per product across the base record and its variants.

from __future__ import annotations

from typing import Iterable

from .snapshot import ProductRecord


def variant_stock(product: ProductRecord) -> int:
    return sum(variant.stock_quantity for variant in product.variants)


def total_stock(product: ProductRecord) -> int:
    """
    Own stock plus every variant's stock.

    Inputs are expected to be non-negative; nothing is clamped.
    """
    return product.stock_quantity + variant_stock(product)


def stock_totals(products: Iterable[ProductRecord]) -> dict[int, int]:
    return {product.id: total_stock(product) for product in products}
