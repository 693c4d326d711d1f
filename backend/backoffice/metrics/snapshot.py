# Overview: Immutable record types for one metrics snapshot.

"""
Snapshot records.

A Snapshot is the complete, read-only input to the metrics engine for one
tenant and one date window. Every collection is a tuple and every record is
a frozen dataclass, so a snapshot can be shared freely and computing on it
twice always yields the same result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from backoffice.time_utils import day_bounds


@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive calendar window.

    As timestamps the window is half-open: starts_at (start_date 00:00:00)
    is inside, ends_before (midnight after end_date) is not. A record
    stamped at any fraction of a second before midnight on end_date is
    inside.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError("end date must not be before start date")

    @property
    def starts_at(self) -> datetime:
        return day_bounds(self.start_date, self.end_date)[0]

    @property
    def ends_before(self) -> datetime:
        return day_bounds(self.start_date, self.end_date)[1]

    def contains(self, moment: datetime) -> bool:
        return self.starts_at <= moment < self.ends_before


@dataclass(frozen=True)
class VariantRecord:
    id: int
    product_id: int
    stock_quantity: int


@dataclass(frozen=True)
class ProductRecord:
    id: int
    name: str
    stock_quantity: int
    min_stock_level: int
    cost_price_cents: int | None
    price_cents: int | None
    is_active: bool = True
    variants: tuple[VariantRecord, ...] = ()


@dataclass(frozen=True)
class PurchaseBatch:
    """One received purchase line: quantity at a unit cost at a point in time."""
    product_id: int | None
    purchase_id: int
    quantity_received: int
    unit_cost_cents: int
    purchased_at: datetime
    purchase_total_cents: int = 0


@dataclass(frozen=True)
class SaleRecord:
    id: int
    total_amount_cents: int
    status: str
    created_at: datetime
    customer_id: int | None = None


@dataclass(frozen=True)
class SaleLineRecord:
    """
    A sold line with its product's cost context joined in.

    product_* fields are None when the product row no longer exists.
    """
    sale_id: int
    product_id: int | None
    variant_id: int | None
    quantity: int
    unit_price_cents: int
    product_cost_price_cents: int | None
    product_price_cents: int | None
    product_name: str | None
    sale_status: str
    sold_at: datetime

    @property
    def has_product(self) -> bool:
        return self.product_id is not None and self.product_name is not None


@dataclass(frozen=True)
class PurchaseRecord:
    id: int
    total_amount_cents: int
    status: str
    created_at: datetime
    vendor_id: int | None = None


@dataclass(frozen=True)
class CustomerActivity:
    total_customers: int = 0
    customer_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Snapshot:
    org_id: int
    window: DateWindow
    sales: tuple[SaleRecord, ...] = ()
    sale_lines: tuple[SaleLineRecord, ...] = ()
    products: tuple[ProductRecord, ...] = ()
    purchases: tuple[PurchaseRecord, ...] = ()
    batches: tuple[PurchaseBatch, ...] = ()
    customers: CustomerActivity = field(default_factory=CustomerActivity)
