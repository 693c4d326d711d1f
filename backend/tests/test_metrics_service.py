# Overview: Pytest coverage for the dashboard metrics service (windows, methods, cache, degraded state).

from datetime import date, datetime, timedelta

import pytest

from backoffice.metrics.profitability import COGS_WEIGHTED_AVERAGE
from backoffice.services import metrics_service, snapshot_service
from backoffice.services.metrics_service import (
    MetricsError,
    OrganizationNotFoundError,
    dashboard_metrics,
    inventory_valuation,
    resolve_method,
    resolve_window,
)
from backoffice.services.snapshot_service import SnapshotFetchError
from backoffice.time_utils import utctoday


def _break_sales_query(monkeypatch):
    def broken(org_id, window):
        raise RuntimeError("sales query failed")

    monkeypatch.setattr(snapshot_service, "fetch_sales", broken)


@pytest.fixture
def shop(db_session, org_a, make_product, make_sale):
    """One product, one completed sale of two units in mid-January."""
    widget = make_product(org_a, name="Widget", stock=10, cost=100, price=150)
    make_sale(org_a, [(widget, 2, 250)], status="COMPLETED", created_at=datetime(2026, 1, 15, 10, 0))
    return widget


class TestResolveWindow:

    def test_explicit_dates(self):
        window = resolve_window("2026-01-01", "2026-01-31")
        assert window.start_date == date(2026, 1, 1)
        assert window.end_date == date(2026, 1, 31)

    def test_defaults_to_trailing_days(self):
        window = resolve_window(None, None, default_days=30)
        assert window.end_date == utctoday()
        assert window.end_date - window.start_date == timedelta(days=29)

    def test_missing_start_counts_back_from_end(self):
        window = resolve_window(None, "2026-03-10", default_days=10)
        assert window.start_date == date(2026, 3, 1)

    def test_bad_format_rejected(self):
        with pytest.raises(MetricsError):
            resolve_window("2026-13-01", "2026-12-31")

    def test_reversed_window_rejected(self):
        with pytest.raises(MetricsError):
            resolve_window("2026-02-01", "2026-01-01")


class TestResolveMethod:

    def test_org_setting_wins(self, db_session, org_a):
        org_a.stock_accounting_method = "LIFO"
        assert resolve_method(org_a, {"STOCK_ACCOUNTING_METHOD": "WAC"}) == "LIFO"

    def test_config_default_when_org_unset(self, db_session, org_a):
        assert resolve_method(org_a, {"STOCK_ACCOUNTING_METHOD": "wac"}) == "WAC"

    def test_fifo_when_nothing_set(self, db_session, org_a):
        assert resolve_method(org_a, {}) == "FIFO"

    def test_invalid_method_rejected(self, db_session, org_a):
        org_a.stock_accounting_method = "HIFO"
        with pytest.raises(MetricsError):
            resolve_method(org_a, {})


class TestDashboardMetrics:

    def test_computes_record_for_window(self, shop, org_a):
        result = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")

        assert result["start_date"] == "2026-01-01"
        assert result["end_date"] == "2026-01-31"
        assert result["costing_method"] == "FIFO"
        assert result["revenue_cents"] == 500
        assert result["cogs_cents"] == 200
        assert result["profit_cents"] == 300
        assert result["profit_margin"] == 60.0
        assert result["stock_by_purchase_price_cents"] == 1000
        assert result["stock_by_sale_price_cents"] == 1500

    def test_sales_outside_window_ignored(self, shop, org_a):
        result = dashboard_metrics(org_id=org_a.id, start="2026-02-01", end="2026-02-28")
        assert result["revenue_cents"] == 0
        # Stock is not windowed
        assert result["stock_by_sale_price_cents"] == 1500

    def test_unknown_org(self, db_session):
        with pytest.raises(OrganizationNotFoundError):
            dashboard_metrics(org_id=99999)

    def test_inactive_org(self, db_session, org_a):
        org_a.is_active = False
        db_session.commit()
        with pytest.raises(OrganizationNotFoundError):
            dashboard_metrics(org_id=org_a.id)

    def test_org_method_is_used(self, db_session, org_a, make_product, make_purchase):
        widget = make_product(org_a, stock=4, price=1000)
        make_purchase(org_a, [(widget, 4, 100)], created_at=datetime(2025, 1, 1))
        make_purchase(org_a, [(widget, 4, 300)], created_at=datetime(2025, 6, 1))
        org_a.stock_accounting_method = "LIFO"
        db_session.commit()

        result = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")

        assert result["costing_method"] == "LIFO"
        assert result["stock_by_purchase_price_cents"] == 1200


class TestDegradedState:

    def test_fetch_failure_returns_zero_record(self, shop, org_a, monkeypatch, caplog):
        _break_sales_query(monkeypatch)

        result = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")

        assert result["revenue_cents"] == 0
        assert result["stock_by_sale_price_cents"] == 0
        assert result["cogs_method"] == COGS_WEIGHTED_AVERAGE
        assert result["start_date"] == "2026-01-01"
        assert "Failed to fetch metrics snapshot" in caplog.text

    def test_zero_record_has_full_shape(self, shop, org_a, monkeypatch):
        healthy = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        _break_sales_query(monkeypatch)
        degraded = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        assert set(degraded) == set(healthy)

    def test_degraded_record_not_cached(self, app, shop, org_a, monkeypatch):
        monkeypatch.setitem(app.config, "METRICS_CACHE_SECONDS", 120)
        with monkeypatch.context() as patch:
            _break_sales_query(patch)
            degraded = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")

        recovered = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")

        assert degraded["revenue_cents"] == 0
        assert recovered["revenue_cents"] == 500

    def test_valuation_propagates_failure(self, shop, org_a, monkeypatch):
        _break_sales_query(monkeypatch)
        with pytest.raises(SnapshotFetchError):
            inventory_valuation(org_id=org_a.id)


class TestCache:

    def test_cached_until_refresh(self, app, shop, org_a, make_sale, monkeypatch):
        monkeypatch.setitem(app.config, "METRICS_CACHE_SECONDS", 120)
        first = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        make_sale(org_a, total=1000, created_at=datetime(2026, 1, 20))

        cached = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        fresh = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31", refresh=True)

        assert first["revenue_cents"] == 500
        assert cached["revenue_cents"] == 500
        assert fresh["revenue_cents"] == 1500

    def test_different_window_is_a_different_entry(self, app, shop, org_a, monkeypatch):
        monkeypatch.setitem(app.config, "METRICS_CACHE_SECONDS", 120)
        january = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        february = dashboard_metrics(org_id=org_a.id, start="2026-02-01", end="2026-02-28")
        assert january["revenue_cents"] == 500
        assert february["revenue_cents"] == 0

    def test_cache_disabled_when_ttl_zero(self, shop, org_a, make_sale):
        dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        make_sale(org_a, total=1000, created_at=datetime(2026, 1, 20))
        result = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        assert result["revenue_cents"] == 1500

    def test_cached_copy_cannot_be_mutated(self, app, shop, org_a, monkeypatch):
        monkeypatch.setitem(app.config, "METRICS_CACHE_SECONDS", 120)
        first = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        first["revenue_cents"] = -1
        again = dashboard_metrics(org_id=org_a.id, start="2026-01-01", end="2026-01-31")
        assert again["revenue_cents"] == 500

    def test_expired_entry_is_dropped(self):
        cache = metrics_service.MetricsCache()
        cache.put("k", {"v": 1})
        assert cache.get("k", 60) == {"v": 1}
        assert cache.get("k", -1) is None


class TestInventoryValuation:

    def test_rows_for_active_products(self, shop, org_a):
        report = inventory_valuation(org_id=org_a.id)
        assert report["org_id"] == org_a.id
        assert report["total_cost_cents"] == 1000
        assert [row["name"] for row in report["rows"]] == ["Widget"]
