from .tenancy import Organization
from .inventory import Product, ProductVariant, Vendor, Purchase, PurchaseLine
from .sales import Sale, SaleLine
from .customers import Customer

__all__ = [
    'Organization',
    'Product', 'ProductVariant', 'Vendor', 'Purchase', 'PurchaseLine',
    'Sale', 'SaleLine',
    'Customer',
]
