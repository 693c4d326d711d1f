# Overview: Revenue, cost of goods sold, gross profit and margin for a window.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .policy import DEFAULT_POLICY, ValuationPolicy, apply_ratio, div_half_up
from .snapshot import PurchaseBatch, SaleLineRecord, SaleRecord

# Sales in these states never count toward revenue or COGS
EXCLUDED_SALE_STATUSES = frozenset({"CANCELLED", "REFUNDED"})

COGS_ACTUAL_COST = "ACTUAL_COST"
COGS_WEIGHTED_AVERAGE = "WEIGHTED_AVERAGE"


@dataclass(frozen=True)
class CogsResult:
    """
    Both COGS estimates plus the one that was chosen.

    method is COGS_ACTUAL_COST when the sold products' cost prices produce a
    positive figure, otherwise COGS_WEIGHTED_AVERAGE.
    """
    method: str
    cogs_cents: int
    actual_cost_cents: int
    weighted_average_cents: int


@dataclass(frozen=True)
class Profitability:
    revenue_cents: int
    sales_count: int
    average_sale_value_cents: int
    cogs: CogsResult
    gross_profit_cents: int
    profit_margin: float


def is_counted_status(status: str | None) -> bool:
    return (status or "").upper() not in EXCLUDED_SALE_STATUSES


def counted_sales(sales: Iterable[SaleRecord]) -> list[SaleRecord]:
    return [sale for sale in sales if is_counted_status(sale.status)]


def sold_lines(lines: Iterable[SaleLineRecord]) -> list[SaleLineRecord]:
    """Lines of counted sales whose product still exists."""
    return [
        line for line in lines
        if line.has_product and is_counted_status(line.sale_status)
    ]


def average_recent_purchase_cost(batches: Iterable[PurchaseBatch], limit: int) -> int:
    """
    Mean purchase total of the `limit` most recent received purchases.

    Each purchase is counted once however many lines it has. Returns 0 when
    there are no received purchases.
    """
    headers: dict[int, PurchaseBatch] = {}
    for batch in batches:
        headers.setdefault(batch.purchase_id, batch)
    recent = sorted(headers.values(), key=lambda batch: batch.purchased_at, reverse=True)[:limit]
    if not recent:
        return 0
    return div_half_up(sum(batch.purchase_total_cents for batch in recent), len(recent))


def calculate_cogs(
    lines: Iterable[SaleLineRecord],
    avg_recent_purchase_cost_cents: int,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
) -> CogsResult:
    """
    COGS for the given sold lines.

    actual:   quantity * product cost price (missing cost counts as 0)
    weighted: quantity * (cost price, else recent purchase average, else
              unit price * COGS_SALE_RATIO_BPS)
    The actual figure wins whenever it is positive.
    """
    actual = 0
    weighted = 0
    for line in lines:
        cost_price = line.product_cost_price_cents or 0
        actual += line.quantity * cost_price
        unit_cost = (
            cost_price
            or avg_recent_purchase_cost_cents
            or apply_ratio(line.unit_price_cents, policy.cogs_sale_ratio_bps)
        )
        weighted += line.quantity * unit_cost

    if actual > 0:
        return CogsResult(COGS_ACTUAL_COST, actual, actual, weighted)
    return CogsResult(COGS_WEIGHTED_AVERAGE, weighted, actual, weighted)


def profit_margin(gross_profit_cents: int, revenue_cents: int) -> float:
    if revenue_cents <= 0:
        return 0.0
    return round(gross_profit_cents / revenue_cents * 100.0, 2)


def calculate_profitability(
    sales: Iterable[SaleRecord],
    lines: Iterable[SaleLineRecord],
    avg_recent_purchase_cost_cents: int,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
) -> Profitability:
    counted = counted_sales(sales)
    revenue = sum(sale.total_amount_cents for sale in counted)
    cogs = calculate_cogs(sold_lines(lines), avg_recent_purchase_cost_cents, policy=policy)
    gross_profit = revenue - cogs.cogs_cents

    return Profitability(
        revenue_cents=revenue,
        sales_count=len(counted),
        average_sale_value_cents=div_half_up(revenue, len(counted)),
        cogs=cogs,
        gross_profit_cents=gross_profit,
        profit_margin=profit_margin(gross_profit, revenue),
    )
