# Overview: Per-product stock valuation from purchase batches with a fallback chain.

"""
Cost allocation.

Matches a held quantity against a product's received purchase batches to
value it at cost. FIFO (the default) consumes the oldest batches first;
LIFO consumes the newest first; WAC averages every usable batch.

When batch history cannot value the quantity at all, a fallback chain
applies, first match wins:
    1. the product's static cost price
    2. sale price * SALE_RATIO_WITH_PURCHASES_BPS, if the tenant has any
       received purchase anywhere
    3. sale price * SALE_RATIO_BPS

A product that carries stock is therefore never valued at zero unless its
sale price is zero as well.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .policy import DEFAULT_POLICY, FIFO, LIFO, WAC, ValuationPolicy, apply_ratio, div_half_up, normalize_method
from .snapshot import PurchaseBatch

SOURCE_NONE = "NONE"
SOURCE_BATCHES = "BATCHES"
SOURCE_COST_PRICE = "COST_PRICE"
SOURCE_SALE_PRICE_WITH_PURCHASES = "SALE_PRICE_WITH_PURCHASES"
SOURCE_SALE_PRICE = "SALE_PRICE"


@dataclass(frozen=True)
class CostAllocation:
    cost_cents: int
    average_unit_cost_cents: int
    source: str


def average_unit_cost(cost_cents: int, quantity: int) -> int:
    """Nearest-cent unit cost; 0 when quantity is not positive."""
    if quantity <= 0:
        return 0
    return div_half_up(cost_cents, quantity)


def batches_for_product(
    batches: Iterable[PurchaseBatch],
    product_id: int,
    *,
    newest_first: bool = False,
) -> list[PurchaseBatch]:
    """
    Batches of one product ordered by purchase time.

    The sort is stable, so batches stamped at the same moment keep their
    input order in either direction.
    """
    own = [batch for batch in batches if batch.product_id == product_id]
    return sorted(own, key=lambda batch: batch.purchased_at, reverse=newest_first)


def _usable(batch: PurchaseBatch) -> bool:
    return batch.quantity_received > 0 and batch.unit_cost_cents > 0


def _walk_batches(ordered: list[PurchaseBatch], required_qty: int) -> int:
    cost = 0
    remaining = required_qty
    for batch in ordered:
        if remaining <= 0:
            break
        if not _usable(batch):
            continue
        take = min(batch.quantity_received, remaining)
        cost += take * batch.unit_cost_cents
        remaining -= take

    # More stock than batch history: price the rest like the last batch walked
    if remaining > 0 and ordered:
        cost += remaining * ordered[-1].unit_cost_cents
    return cost


def _weighted_average(ordered: list[PurchaseBatch], required_qty: int) -> int:
    usable = [batch for batch in ordered if _usable(batch)]
    units = sum(batch.quantity_received for batch in usable)
    if units <= 0:
        return 0
    value = sum(batch.quantity_received * batch.unit_cost_cents for batch in usable)
    return div_half_up(required_qty * value, units)


def _fallback(
    required_qty: int,
    product_cost_price_cents: int | None,
    product_price_cents: int | None,
    any_purchases_exist: bool,
    policy: ValuationPolicy,
) -> tuple[int, str]:
    if product_cost_price_cents and product_cost_price_cents > 0:
        return required_qty * product_cost_price_cents, SOURCE_COST_PRICE
    if any_purchases_exist:
        unit = apply_ratio(product_price_cents, policy.sale_ratio_with_purchases_bps)
        return required_qty * unit, SOURCE_SALE_PRICE_WITH_PURCHASES
    unit = apply_ratio(product_price_cents, policy.sale_ratio_bps)
    return required_qty * unit, SOURCE_SALE_PRICE


def allocate_cost(
    product_id: int,
    required_qty: int,
    batches: Iterable[PurchaseBatch],
    product_cost_price_cents: int | None,
    product_price_cents: int | None,
    any_purchases_exist: bool,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
    method: str = FIFO,
) -> CostAllocation:
    """
    Value required_qty units of a product at cost.

    Batches of other products are ignored, so the full tenant batch list
    may be passed in.
    """
    method = normalize_method(method)
    if required_qty <= 0:
        return CostAllocation(cost_cents=0, average_unit_cost_cents=0, source=SOURCE_NONE)

    ordered = batches_for_product(batches, product_id, newest_first=(method == LIFO))
    if method == WAC:
        cost = _weighted_average(ordered, required_qty)
    else:
        cost = _walk_batches(ordered, required_qty)
    source = SOURCE_BATCHES

    if cost == 0:
        cost, source = _fallback(
            required_qty,
            product_cost_price_cents,
            product_price_cents,
            any_purchases_exist,
            policy,
        )

    return CostAllocation(
        cost_cents=cost,
        average_unit_cost_cents=average_unit_cost(cost, required_qty),
        source=source,
    )
