# Overview: Pytest coverage for batch cost allocation and its fallback chain.

from datetime import datetime

import pytest

from backoffice.metrics.costing import (
    SOURCE_BATCHES,
    SOURCE_COST_PRICE,
    SOURCE_NONE,
    SOURCE_SALE_PRICE,
    SOURCE_SALE_PRICE_WITH_PURCHASES,
    allocate_cost,
    batches_for_product,
)
from backoffice.metrics.policy import LIFO, WAC, ValuationError, ValuationPolicy
from backoffice.metrics.snapshot import PurchaseBatch


def batch(product_id, qty, unit_cost, day, purchase_id=None):
    return PurchaseBatch(
        product_id=product_id,
        purchase_id=purchase_id or day,
        quantity_received=qty,
        unit_cost_cents=unit_cost,
        purchased_at=datetime(2026, 1, day, 10, 0),
    )


@pytest.fixture
def two_batches():
    # Deliberately out of order: allocation must sort by purchase time
    return [batch(1, 10, 2000, 5), batch(1, 5, 1000, 2)]


class TestBatchAllocation:

    def test_fifo_consumes_oldest_first(self, two_batches):
        result = allocate_cost(1, 8, two_batches, None, 5000, True)
        assert result.cost_cents == 5 * 1000 + 3 * 2000
        assert result.average_unit_cost_cents == 1375
        assert result.source == SOURCE_BATCHES

    def test_lifo_consumes_newest_first(self, two_batches):
        result = allocate_cost(1, 8, two_batches, None, 5000, True, method=LIFO)
        assert result.cost_cents == 8 * 2000

    def test_wac_averages_all_batches(self, two_batches):
        result = allocate_cost(1, 8, two_batches, None, 5000, True, method=WAC)
        # 8 * 25000 / 15 = 13333.33
        assert result.cost_cents == 13333
        assert result.average_unit_cost_cents == 1667

    def test_method_is_case_insensitive(self, two_batches):
        result = allocate_cost(1, 8, two_batches, None, 5000, True, method="lifo")
        assert result.cost_cents == 16000

    def test_unknown_method_raises(self, two_batches):
        with pytest.raises(ValuationError):
            allocate_cost(1, 8, two_batches, None, 5000, True, method="HIFO")

    def test_remainder_priced_at_last_batch(self):
        batches = [batch(1, 5, 1000, 1), batch(1, 5, 2000, 2)]
        result = allocate_cost(1, 12, batches, None, 5000, True)
        assert result.cost_cents == 5000 + 10000 + 2 * 2000

    def test_other_products_batches_are_ignored(self):
        batches = [batch(2, 100, 1, 1), batch(1, 4, 300, 3), batch(3, 100, 1, 2)]
        result = allocate_cost(1, 4, batches, None, 5000, True)
        assert result.cost_cents == 1200

    def test_unusable_batches_are_skipped(self):
        batches = [batch(1, 0, 900, 1), batch(1, 5, 0, 2), batch(1, 5, 400, 3)]
        result = allocate_cost(1, 3, batches, None, 5000, True)
        assert result.cost_cents == 1200

    def test_equal_timestamps_keep_input_order(self):
        stamp = datetime(2026, 1, 1, 8, 0)
        first = PurchaseBatch(1, 10, 2, 100, stamp)
        second = PurchaseBatch(1, 11, 2, 300, stamp)

        assert batches_for_product([first, second], 1) == [first, second]
        assert batches_for_product([first, second], 1, newest_first=True) == [first, second]
        assert allocate_cost(1, 2, [first, second], None, 0, True).cost_cents == 200
        assert allocate_cost(1, 2, [first, second], None, 0, True, method=LIFO).cost_cents == 200


class TestFallbackChain:

    def test_zero_quantity_is_zero(self, two_batches):
        result = allocate_cost(1, 0, two_batches, 100, 5000, True)
        assert result.cost_cents == 0
        assert result.average_unit_cost_cents == 0
        assert result.source == SOURCE_NONE

    def test_negative_quantity_is_zero(self, two_batches):
        assert allocate_cost(1, -3, two_batches, 100, 5000, True).cost_cents == 0

    def test_cost_price_used_without_batches(self):
        result = allocate_cost(1, 4, [], 250, 10000, True)
        assert result.cost_cents == 1000
        assert result.source == SOURCE_COST_PRICE

    def test_sale_ratio_when_tenant_has_purchases(self):
        result = allocate_cost(1, 3, [], None, 10000, True)
        assert result.cost_cents == 3 * 7000
        assert result.average_unit_cost_cents == 7000
        assert result.source == SOURCE_SALE_PRICE_WITH_PURCHASES

    def test_sale_ratio_without_any_purchases(self):
        result = allocate_cost(1, 3, [], None, 10000, False)
        assert result.cost_cents == 3 * 6000
        assert result.source == SOURCE_SALE_PRICE

    def test_zero_cost_price_falls_through(self):
        result = allocate_cost(1, 2, [], 0, 1000, False)
        assert result.cost_cents == 1200

    def test_unusable_batches_fall_back(self):
        result = allocate_cost(1, 2, [batch(1, 5, 0, 1)], 300, 1000, True)
        assert result.cost_cents == 600
        assert result.source == SOURCE_COST_PRICE

    def test_missing_price_values_at_zero(self):
        result = allocate_cost(1, 5, [], None, None, True)
        assert result.cost_cents == 0

    def test_policy_ratios_are_applied(self):
        policy = ValuationPolicy(sale_ratio_with_purchases_bps=5000, sale_ratio_bps=2500)
        assert allocate_cost(1, 2, [], None, 1000, True, policy=policy).cost_cents == 1000
        assert allocate_cost(1, 2, [], None, 1000, False, policy=policy).cost_cents == 500

    def test_ratio_rounds_half_up_per_unit(self):
        # 70% of 5 cents = 3.5 -> 4 per unit
        assert allocate_cost(1, 10, [], None, 5, True).cost_cents == 40


class TestValuationPolicy:

    def test_negative_ratio_rejected(self):
        with pytest.raises(ValuationError):
            ValuationPolicy(sale_ratio_bps=-1)

    def test_recent_limit_must_be_positive(self):
        with pytest.raises(ValuationError):
            ValuationPolicy(recent_purchases_limit=0)

    def test_from_config_defaults(self):
        policy = ValuationPolicy.from_config({})
        assert policy == ValuationPolicy()

    def test_from_config_reads_keys(self):
        policy = ValuationPolicy.from_config({
            "VALUATION_SALE_RATIO_WITH_PURCHASES_BPS": 8000,
            "VALUATION_SALE_RATIO_BPS": 5000,
            "COGS_SALE_RATIO_BPS": 6500,
            "RECENT_PURCHASES_LIMIT": 3,
        })
        assert policy.sale_ratio_with_purchases_bps == 8000
        assert policy.sale_ratio_bps == 5000
        assert policy.cogs_sale_ratio_bps == 6500
        assert policy.recent_purchases_limit == 3


def test_lifo_remainder_priced_at_oldest_batch():
    batches = [batch(1, 5, 1000, 1), batch(1, 5, 2000, 2)]
    result = allocate_cost(1, 12, batches, None, 5000, True, method=LIFO)
    assert result.cost_cents == 10000 + 5000 + 2 * 1000
