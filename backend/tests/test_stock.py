# Overview: Pytest coverage for per-product stock totals.

from backoffice.metrics.snapshot import ProductRecord, VariantRecord
from backoffice.metrics.stock import stock_totals, total_stock, variant_stock


def product(product_id, stock, variants=()):
    return ProductRecord(
        id=product_id,
        name=f"P{product_id}",
        stock_quantity=stock,
        min_stock_level=0,
        cost_price_cents=None,
        price_cents=None,
        variants=tuple(
            VariantRecord(id=index, product_id=product_id, stock_quantity=qty)
            for index, qty in enumerate(variants, start=1)
        ),
    )


def test_total_stock_adds_variants():
    p = product(1, 3, variants=[2, 5])
    assert variant_stock(p) == 7
    assert total_stock(p) == 10


def test_total_stock_without_variants():
    assert total_stock(product(1, 4)) == 4


def test_zero_base_stock_with_variant_stock():
    assert total_stock(product(1, 0, variants=[6])) == 6


def test_stock_totals_by_product():
    totals = stock_totals([product(1, 3, variants=[1]), product(2, 0)])
    assert totals == {1: 4, 2: 0}


def test_stock_totals_empty():
    assert stock_totals([]) == {}
