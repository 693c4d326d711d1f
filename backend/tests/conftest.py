# Overview: Pytest fixtures for backoffice metrics tests.

"""
Pytest fixtures for backoffice tests.

Provides the test app and database, two tenants, and small factories for
products, purchases, sales and customers.

The database is a temporary SQLite file rather than :memory:, because the
snapshot fetcher opens one connection per worker thread and every worker
must see the same data.
"""

from datetime import datetime

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import (
    Customer, Organization, Product, ProductVariant, Purchase, PurchaseLine, Sale, SaleLine,
)
from backoffice.services import metrics_service


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "metrics-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False}},
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'METRICS_CACHE_SECONDS': 0,
        'STOCK_ACCOUNTING_METHOD': 'FIFO',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        metrics_service.clear_cache()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        metrics_service.clear_cache()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Acme Corp", code="ACME", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Beta Inc", code="BETA", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product with optional variant stock."""
    counter = {"n": 0}

    def _make(org, *, name=None, stock=0, min_stock=0, cost=None, price=None,
              variants=(), is_active=True):
        counter["n"] += 1
        product = Product(
            org_id=org.id,
            sku=f"SKU-{counter['n']:04d}",
            name=name or f"Product {counter['n']}",
            stock_quantity=stock,
            min_stock_level=min_stock,
            cost_price_cents=cost,
            price_cents=price,
            is_active=is_active,
        )
        for index, variant_stock in enumerate(variants, start=1):
            product.variants.append(
                ProductVariant(name=f"Variant {index}", stock_quantity=variant_stock)
            )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_purchase(db_session):
    """Factory: purchase with (product, quantity_received, unit_cost_cents) lines."""
    counter = {"n": 0}

    def _make(org, lines=(), *, status="RECEIVED", created_at=None, total=None):
        counter["n"] += 1
        purchase = Purchase(
            org_id=org.id,
            document_number=f"PO-{counter['n']:05d}",
            status=status,
            created_at=created_at or datetime(2026, 1, 10, 9, 0),
        )
        computed_total = 0
        for product, quantity, unit_cost in lines:
            purchase.lines.append(PurchaseLine(
                product_id=product.id if product is not None else None,
                quantity_ordered=quantity,
                quantity_received=quantity,
                unit_cost_cents=unit_cost,
            ))
            computed_total += quantity * unit_cost
        purchase.total_amount_cents = computed_total if total is None else total
        db_session.add(purchase)
        db_session.commit()
        return purchase

    return _make


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Factory: sale with (product, quantity, unit_price_cents) lines."""
    counter = {"n": 0}

    def _make(org, lines=(), *, status="COMPLETED", created_at=None, total=None, customer=None):
        counter["n"] += 1
        sale = Sale(
            org_id=org.id,
            document_number=f"S-{counter['n']:05d}",
            status=status,
            created_at=created_at or datetime(2026, 1, 15, 12, 0),
            customer_id=customer.id if customer is not None else None,
        )
        computed_total = 0
        for product, quantity, unit_price in lines:
            sale.lines.append(SaleLine(
                product_id=product.id if product is not None else None,
                quantity=quantity,
                unit_price_cents=unit_price,
                line_total_cents=quantity * unit_price,
            ))
            computed_total += quantity * unit_price
        sale.total_amount_cents = computed_total if total is None else total
        db_session.add(sale)
        db_session.commit()
        return sale

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: customer in an organization."""
    counter = {"n": 0}

    def _make(org, *, is_active=True):
        counter["n"] += 1
        customer = Customer(
            org_id=org.id,
            first_name="Customer",
            last_name=str(counter["n"]),
            email=f"customer{counter['n']}@example.com",
            is_active=is_active,
        )
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make
