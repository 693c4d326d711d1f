# Overview: Combines stock, cost and profitability figures into the dashboard metrics record.

"""
Metrics assembly.

compute_metrics() is a pure function of a Snapshot: it never touches the
database, Flask, or any module-level state, so the same snapshot always
yields an equal DashboardMetrics.

Classification rules:
- low stock:     own stock_quantity <= min_stock_level, min_stock_level > 0
- out of stock:  own stock_quantity == 0
  (both use the product's own stock field, variant stock is ignored)
- profitable:    price > cost_price > 0
- with stock:    total stock (own + variants) > 0
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date

from .costing import SOURCE_BATCHES, SOURCE_NONE, allocate_cost
from .policy import DEFAULT_POLICY, FIFO, ValuationPolicy, normalize_method
from .profitability import (
    COGS_ACTUAL_COST,
    COGS_WEIGHTED_AVERAGE,
    average_recent_purchase_cost,
    calculate_profitability,
)
from .snapshot import DateWindow, ProductRecord, PurchaseBatch, Snapshot
from .stock import total_stock, variant_stock

CANCELLED_PURCHASE_STATUS = "CANCELLED"

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardMetrics:
    start_date: date
    end_date: date
    costing_method: str
    revenue_cents: int
    sales_count: int
    average_sale_value_cents: int
    total_customers: int
    active_customers: int
    total_purchases_cents: int
    purchases_count: int
    stock_by_purchase_price_cents: int
    stock_by_sale_price_cents: int
    potential_stock_value_cents: int
    profit_cents: int
    profit_margin: float
    cogs_cents: int
    cogs_method: str
    cogs_actual_cost_cents: int
    cogs_weighted_average_cents: int
    low_stock_count: int
    out_of_stock_count: int
    total_products: int
    products_with_stock: int
    profitable_products: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat()
        data["end_date"] = self.end_date.isoformat()
        return data


@dataclass(frozen=True)
class ProductValuation:
    product_id: int
    name: str
    own_stock: int
    variant_stock: int
    total_stock: int
    cost_cents: int
    average_unit_cost_cents: int
    sale_value_cents: int
    cost_source: str

    def to_dict(self) -> dict:
        return asdict(self)


def _group_batches(batches: tuple[PurchaseBatch, ...]) -> dict[int, list[PurchaseBatch]]:
    grouped: dict[int, list[PurchaseBatch]] = {}
    for batch in batches:
        if batch.product_id is None:
            continue
        grouped.setdefault(batch.product_id, []).append(batch)
    return grouped


def value_product(
    product: ProductRecord,
    batches: list[PurchaseBatch],
    any_purchases_exist: bool,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
    method: str = FIFO,
) -> ProductValuation:
    stock = total_stock(product)
    allocation = allocate_cost(
        product.id,
        stock,
        batches,
        product.cost_price_cents,
        product.price_cents,
        any_purchases_exist,
        policy=policy,
        method=method,
    )
    return ProductValuation(
        product_id=product.id,
        name=product.name,
        own_stock=product.stock_quantity,
        variant_stock=variant_stock(product),
        total_stock=stock,
        cost_cents=allocation.cost_cents,
        average_unit_cost_cents=allocation.average_unit_cost_cents,
        sale_value_cents=stock * (product.price_cents or 0),
        cost_source=allocation.source,
    )


def product_valuations(
    snapshot: Snapshot,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
    method: str = FIFO,
) -> list[ProductValuation]:
    """One valuation row per product, in snapshot order."""
    method = normalize_method(method)
    grouped = _group_batches(snapshot.batches)
    any_purchases_exist = bool(snapshot.batches)
    return [
        value_product(
            product,
            grouped.get(product.id, []),
            any_purchases_exist,
            policy=policy,
            method=method,
        )
        for product in snapshot.products
    ]


def _is_low_stock(product: ProductRecord) -> bool:
    return product.min_stock_level > 0 and product.stock_quantity <= product.min_stock_level


def _is_profitable(product: ProductRecord) -> bool:
    cost = product.cost_price_cents or 0
    price = product.price_cents or 0
    return cost > 0 and price > cost


def compute_metrics(
    snapshot: Snapshot,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
    method: str = FIFO,
    logger: logging.Logger | None = None,
) -> DashboardMetrics:
    log = logger or _log
    method = normalize_method(method)

    rows = product_valuations(snapshot, policy=policy, method=method)
    stock_by_purchase_price = sum(row.cost_cents for row in rows if row.total_stock > 0)
    stock_by_sale_price = sum(row.sale_value_cents for row in rows)

    known_products = {product.id for product in snapshot.products}
    orphan_batches = sum(
        1 for batch in snapshot.batches
        if batch.product_id is None or batch.product_id not in known_products
    )
    orphan_lines = sum(1 for line in snapshot.sale_lines if not line.has_product)
    if orphan_batches or orphan_lines:
        log.debug(
            "Skipped rows without a product: org_id=%s batches=%s sale_lines=%s",
            snapshot.org_id, orphan_batches, orphan_lines,
        )

    avg_purchase_cost = average_recent_purchase_cost(snapshot.batches, policy.recent_purchases_limit)
    profitability = calculate_profitability(
        snapshot.sales,
        snapshot.sale_lines,
        avg_purchase_cost,
        policy=policy,
    )
    if profitability.cogs.method != COGS_ACTUAL_COST and profitability.cogs.cogs_cents:
        log.debug(
            "COGS estimated by weighted average: org_id=%s avg_recent_purchase_cost_cents=%s",
            snapshot.org_id, avg_purchase_cost,
        )

    purchases = [
        purchase for purchase in snapshot.purchases
        if (purchase.status or "").upper() != CANCELLED_PURCHASE_STATUS
    ]
    estimated = sum(
        1 for row in rows if row.cost_source not in (SOURCE_NONE, SOURCE_BATCHES)
    )

    metrics = DashboardMetrics(
        start_date=snapshot.window.start_date,
        end_date=snapshot.window.end_date,
        costing_method=method,
        revenue_cents=profitability.revenue_cents,
        sales_count=profitability.sales_count,
        average_sale_value_cents=profitability.average_sale_value_cents,
        total_customers=snapshot.customers.total_customers,
        active_customers=len(snapshot.customers.customer_ids),
        total_purchases_cents=sum(purchase.total_amount_cents for purchase in purchases),
        purchases_count=len(purchases),
        stock_by_purchase_price_cents=stock_by_purchase_price,
        stock_by_sale_price_cents=stock_by_sale_price,
        potential_stock_value_cents=stock_by_sale_price - stock_by_purchase_price,
        profit_cents=profitability.gross_profit_cents,
        profit_margin=profitability.profit_margin,
        cogs_cents=profitability.cogs.cogs_cents,
        cogs_method=profitability.cogs.method,
        cogs_actual_cost_cents=profitability.cogs.actual_cost_cents,
        cogs_weighted_average_cents=profitability.cogs.weighted_average_cents,
        low_stock_count=sum(1 for product in snapshot.products if _is_low_stock(product)),
        out_of_stock_count=sum(1 for product in snapshot.products if product.stock_quantity == 0),
        total_products=len(snapshot.products),
        products_with_stock=sum(1 for row in rows if row.total_stock > 0),
        profitable_products=sum(1 for product in snapshot.products if _is_profitable(product)),
    )
    log.info(
        "Computed metrics: org_id=%s window=%s..%s method=%s products=%s estimated_costs=%s",
        snapshot.org_id, metrics.start_date, metrics.end_date, method,
        metrics.total_products, estimated,
    )
    return metrics


def empty_metrics(window: DateWindow, method: str = FIFO) -> DashboardMetrics:
    """All-zero record with the same shape as a computed one."""
    return DashboardMetrics(
        start_date=window.start_date,
        end_date=window.end_date,
        costing_method=method,
        revenue_cents=0,
        sales_count=0,
        average_sale_value_cents=0,
        total_customers=0,
        active_customers=0,
        total_purchases_cents=0,
        purchases_count=0,
        stock_by_purchase_price_cents=0,
        stock_by_sale_price_cents=0,
        potential_stock_value_cents=0,
        profit_cents=0,
        profit_margin=0.0,
        cogs_cents=0,
        cogs_method=COGS_WEIGHTED_AVERAGE,
        cogs_actual_cost_cents=0,
        cogs_weighted_average_cents=0,
        low_stock_count=0,
        out_of_stock_count=0,
        total_products=0,
        products_with_stock=0,
        profitable_products=0,
    )


def valuation_report(
    snapshot: Snapshot,
    *,
    policy: ValuationPolicy = DEFAULT_POLICY,
    method: str = FIFO,
) -> dict:
    method = normalize_method(method)
    rows = product_valuations(snapshot, policy=policy, method=method)
    total_cost = sum(row.cost_cents for row in rows if row.total_stock > 0)
    total_sale = sum(row.sale_value_cents for row in rows)
    return {
        "org_id": snapshot.org_id,
        "costing_method": method,
        "total_cost_cents": total_cost,
        "total_sale_value_cents": total_sale,
        "potential_profit_cents": total_sale - total_cost,
        "rows": [row.to_dict() for row in rows],
    }
