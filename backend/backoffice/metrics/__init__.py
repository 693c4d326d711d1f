# Overview: Pure inventory valuation and business metrics engine (no Flask, no database).

from .assembler import DashboardMetrics, ProductValuation, compute_metrics, empty_metrics, product_valuations, valuation_report
from .costing import CostAllocation, allocate_cost
from .policy import DEFAULT_POLICY, ValuationError, ValuationPolicy
from .profitability import COGS_ACTUAL_COST, COGS_WEIGHTED_AVERAGE, CogsResult
from .snapshot import (
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
from .stock import total_stock

__all__ = [
    'DashboardMetrics', 'ProductValuation', 'compute_metrics', 'empty_metrics',
    'product_valuations', 'valuation_report',
    'CostAllocation', 'allocate_cost',
    'DEFAULT_POLICY', 'ValuationError', 'ValuationPolicy',
    'COGS_ACTUAL_COST', 'COGS_WEIGHTED_AVERAGE', 'CogsResult',
    'CustomerActivity', 'DateWindow', 'ProductRecord', 'PurchaseBatch', 'PurchaseRecord',
    'SaleLineRecord', 'SaleRecord', 'Snapshot', 'VariantRecord',
    'total_stock',
]
