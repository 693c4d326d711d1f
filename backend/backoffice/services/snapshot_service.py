# Overview: Fetches the read-only metrics snapshot for one tenant and date window.

"""
Snapshot fetcher.

Six independent read-only queries run concurrently, each in its own app
context and session:

    sales        sales created inside the window (every status)
    sale_lines   lines of those sales, product cost/price/name outer-joined
    products     active products with their variants
    purchases    purchases created inside the window (every status)
    batches      received purchase lines, tenant-wide (not windowed),
                 ordered by purchase created_at then line id
    customers    active customer count plus distinct customer ids across
                 all of the tenant's sales (not windowed)

WINDOW: windowed filters are half-open
(window.starts_at <= created_at < window.ends_before), which keeps every
instant of the end date. On SQLite both sides are normalized with datetime()
because stored timestamps are text in more than one format
("2026-01-01 00:00:00" from server defaults, "2026-01-01 00:00:00.000000"
from the ORM) and plain text comparison orders them wrongly.

FAILURE: if any query fails the whole snapshot fails with
SnapshotFetchError. There are no partial snapshots.
"""

from __future__ import annotations

import logging
import time
from functools import partial

from flask import Flask, current_app
from sqlalchemy import and_, func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..metrics.snapshot import (
    CustomerActivity,
    DateWindow,
    ProductRecord,
    PurchaseBatch,
    PurchaseRecord,
    SaleLineRecord,
    SaleRecord,
    Snapshot,
    VariantRecord,
)
from ..models import Customer, Product, Purchase, PurchaseLine, Sale, SaleLine
from ..models.inventory import RECEIVED_PURCHASE_STATUSES
from .concurrency import FanOutError, run_concurrently


class SnapshotFetchError(Exception):
    """Raised when any snapshot query fails."""

    def __init__(self, message: str, *, query: str | None = None):
        super().__init__(message)
        self.query = query


def _in_window(column, window: DateWindow):
    if db.engine.dialect.name == "sqlite":
        stamped = func.datetime(column)
        return and_(
            stamped >= func.datetime(window.starts_at),
            stamped < func.datetime(window.ends_before),
        )
    return and_(column >= window.starts_at, column < window.ends_before)


def fetch_sales(org_id: int, window: DateWindow) -> tuple[SaleRecord, ...]:
    rows = db.session.query(
        Sale.id,
        Sale.total_amount_cents,
        Sale.status,
        Sale.created_at,
        Sale.customer_id,
    ).filter(
        Sale.org_id == org_id,
        _in_window(Sale.created_at, window),
    ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()

    return tuple(
        SaleRecord(
            id=row.id,
            total_amount_cents=int(row.total_amount_cents or 0),
            status=row.status,
            created_at=row.created_at,
            customer_id=row.customer_id,
        )
        for row in rows
    )


def fetch_sale_lines(org_id: int, window: DateWindow) -> tuple[SaleLineRecord, ...]:
    # Outer join: a line whose product is gone (or belongs to another tenant)
    # comes back with product_* = None and is skipped downstream.
    rows = db.session.query(
        SaleLine.sale_id,
        SaleLine.product_id,
        SaleLine.variant_id,
        SaleLine.quantity,
        SaleLine.unit_price_cents,
        Product.cost_price_cents.label("product_cost_price_cents"),
        Product.price_cents.label("product_price_cents"),
        Product.name.label("product_name"),
        Sale.status.label("sale_status"),
        Sale.created_at.label("sold_at"),
    ).join(
        Sale, SaleLine.sale_id == Sale.id
    ).outerjoin(
        Product, and_(SaleLine.product_id == Product.id, Product.org_id == org_id)
    ).filter(
        Sale.org_id == org_id,
        _in_window(Sale.created_at, window),
    ).order_by(Sale.created_at.asc(), SaleLine.id.asc()).all()

    return tuple(
        SaleLineRecord(
            sale_id=row.sale_id,
            product_id=row.product_id,
            variant_id=row.variant_id,
            quantity=int(row.quantity or 0),
            unit_price_cents=int(row.unit_price_cents or 0),
            product_cost_price_cents=row.product_cost_price_cents,
            product_price_cents=row.product_price_cents,
            product_name=row.product_name,
            sale_status=row.sale_status,
            sold_at=row.sold_at,
        )
        for row in rows
    )


def fetch_products(org_id: int) -> tuple[ProductRecord, ...]:
    products = db.session.query(Product).options(
        selectinload(Product.variants)
    ).filter(
        Product.org_id == org_id,
        Product.is_active.is_(True),
    ).order_by(Product.name.asc(), Product.id.asc()).all()

    return tuple(
        ProductRecord(
            id=product.id,
            name=product.name,
            stock_quantity=int(product.stock_quantity or 0),
            min_stock_level=int(product.min_stock_level or 0),
            cost_price_cents=product.cost_price_cents,
            price_cents=product.price_cents,
            is_active=bool(product.is_active),
            variants=tuple(
                VariantRecord(
                    id=variant.id,
                    product_id=variant.product_id,
                    stock_quantity=int(variant.stock_quantity or 0),
                )
                for variant in product.variants
            ),
        )
        for product in products
    )


def fetch_purchases(org_id: int, window: DateWindow) -> tuple[PurchaseRecord, ...]:
    rows = db.session.query(
        Purchase.id,
        Purchase.total_amount_cents,
        Purchase.status,
        Purchase.created_at,
        Purchase.vendor_id,
    ).filter(
        Purchase.org_id == org_id,
        _in_window(Purchase.created_at, window),
    ).order_by(Purchase.created_at.asc(), Purchase.id.asc()).all()

    return tuple(
        PurchaseRecord(
            id=row.id,
            total_amount_cents=int(row.total_amount_cents or 0),
            status=row.status,
            created_at=row.created_at,
            vendor_id=row.vendor_id,
        )
        for row in rows
    )


def fetch_batches(org_id: int) -> tuple[PurchaseBatch, ...]:
    """
    Received purchase lines for the tenant, oldest purchase first.

    CRITICAL: Only RECEIVED/COMPLETED purchases produce batches. Draft,
    ordered and cancelled purchases never held stock.
    """
    rows = db.session.query(
        PurchaseLine.product_id,
        PurchaseLine.purchase_id,
        PurchaseLine.quantity_received,
        PurchaseLine.unit_cost_cents,
        Purchase.created_at.label("purchased_at"),
        Purchase.total_amount_cents.label("purchase_total_cents"),
    ).join(
        Purchase, PurchaseLine.purchase_id == Purchase.id
    ).filter(
        Purchase.org_id == org_id,
        Purchase.status.in_(RECEIVED_PURCHASE_STATUSES),
    ).order_by(Purchase.created_at.asc(), PurchaseLine.id.asc()).all()

    return tuple(
        PurchaseBatch(
            product_id=row.product_id,
            purchase_id=row.purchase_id,
            quantity_received=int(row.quantity_received or 0),
            unit_cost_cents=int(row.unit_cost_cents or 0),
            purchased_at=row.purchased_at,
            purchase_total_cents=int(row.purchase_total_cents or 0),
        )
        for row in rows
    )


def fetch_customer_activity(org_id: int) -> CustomerActivity:
    total = db.session.query(func.count(Customer.id)).filter(
        Customer.org_id == org_id,
        Customer.is_active.is_(True),
    ).scalar()

    rows = db.session.query(Sale.customer_id).filter(
        Sale.org_id == org_id,
        Sale.customer_id.isnot(None),
    ).distinct().all()

    return CustomerActivity(
        total_customers=int(total or 0),
        customer_ids=frozenset(row.customer_id for row in rows),
    )


def fetch_snapshot(
    org_id: int,
    window: DateWindow,
    *,
    max_workers: int = 6,
    app: Flask | None = None,
    logger: logging.Logger | None = None,
) -> Snapshot:
    """
    Issue all six snapshot queries concurrently and assemble the Snapshot.

    Raises SnapshotFetchError if any query fails.
    """
    app = app or current_app._get_current_object()
    log = logger or app.logger

    tasks = {
        "sales": partial(fetch_sales, org_id, window),
        "sale_lines": partial(fetch_sale_lines, org_id, window),
        "products": partial(fetch_products, org_id),
        "purchases": partial(fetch_purchases, org_id, window),
        "batches": partial(fetch_batches, org_id),
        "customers": partial(fetch_customer_activity, org_id),
    }

    started = time.monotonic()
    try:
        results = run_concurrently(app, tasks, max_workers=max_workers)
    except FanOutError as exc:
        raise SnapshotFetchError(
            f"Snapshot query '{exc.task_name}' failed for org_id={org_id}",
            query=exc.task_name,
        ) from exc.original

    log.debug(
        "Fetched metrics snapshot: org_id=%s window=%s..%s elapsed_ms=%.1f",
        org_id, window.start_date, window.end_date, (time.monotonic() - started) * 1000,
    )
    return Snapshot(org_id=org_id, window=window, **results)
